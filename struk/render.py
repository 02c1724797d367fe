"""
Receipt region layout.

``build_region`` turns a display state into a ``ReceiptRegion``: the ordered
blocks of a thermal-style receipt (header, meta, item table, totals, notes,
footer). The region only has slots for receipt content; buttons and links of
the surrounding interface have nowhere to go, so a snapshot of the region can
never contain them.

Units are CSS pixels; the rasterizer multiplies them by the export scale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union

from .config import Settings
from .money import format_rupiah, format_timestamp
from .schemas import DisplayState

REGION_WIDTH = 336
REGION_PADDING = 16
LINE_HEIGHT = 20
BASE_SIZE = 13
SMALL_SIZE = 12
TITLE_SIZE = 14
LOGO_SIZE = 48
QTY_COLUMN = 56
PRICE_COLUMN = 112
NAME_GUTTER = 8

FOOTER_LINES = ("Terima kasih!", "Barang sudah diterima dengan baik.")
EMPTY_ITEMS = "Belum ada item"


@dataclass(frozen=True)
class Logo:
	source: str
	size: int = LOGO_SIZE


@dataclass(frozen=True)
class Text:
	text: str
	size: int = BASE_SIZE
	bold: bool = False
	align: Literal["left", "center"] = "left"


@dataclass(frozen=True)
class Row:
	left: str
	right: str
	size: int = SMALL_SIZE
	bold: bool = False


@dataclass(frozen=True)
class ItemRow:
	name: str
	quantity: str
	price: str
	size: int = BASE_SIZE


@dataclass(frozen=True)
class Rule:
	margin: int = 8


Block = Union[Logo, Text, Row, ItemRow, Rule]


@dataclass
class ReceiptRegion:
	width: int = REGION_WIDTH
	padding: int = REGION_PADDING
	blocks: list[Block] = field(default_factory=list)
	mounted: bool = True

	@property
	def content_width(self) -> int:
		return self.width - 2 * self.padding

	def asset_sources(self) -> list[str]:
		return [b.source for b in self.blocks if isinstance(b, Logo)]

	def detach(self) -> None:
		self.mounted = False


def build_region(
	display: DisplayState,
	settings: Settings,
	now: datetime | None = None,
) -> ReceiptRegion:
	now = now or datetime.now()
	blocks: list[Block] = []

	# header
	if settings.brand_logo:
		blocks.append(Logo(settings.brand_logo))
	blocks.append(Text(settings.brand_name, size=TITLE_SIZE, bold=True, align="center"))
	blocks.append(Text(settings.brand_phone, size=SMALL_SIZE, align="center"))
	blocks.append(Rule())

	# meta
	blocks.append(Row("Tanggal", format_timestamp(now)))
	blocks.append(Row("No. Struk", display.label))
	blocks.append(Row("Pelanggan", display.customer_name or "-"))
	blocks.append(Rule())

	# items
	if not display.items:
		blocks.append(Text(EMPTY_ITEMS, size=SMALL_SIZE, align="center"))
	for it in display.items:
		blocks.append(ItemRow(it.name, f"{it.quantity}x", format_rupiah(it.price)))
	blocks.append(Rule())

	# totals
	blocks.append(Row("Total", format_rupiah(display.total), size=BASE_SIZE, bold=True))
	blocks.append(Text(f"Catatan: {display.notes or '-'}", size=SMALL_SIZE))
	blocks.append(Rule())

	# footer
	for line in FOOTER_LINES:
		blocks.append(Text(line, size=SMALL_SIZE, align="center"))

	return ReceiptRegion(blocks=blocks)
