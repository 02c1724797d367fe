from __future__ import annotations

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from .errors import EmptyName, InvalidPrice
from .schemas import Draft, LineItem

log = logging.getLogger(__name__)

Listener = Callable[[], None]


def coerce_quantity(raw: Any) -> int:
	"""Integer quantity, clamped to 1 when non-positive or not a number."""
	if isinstance(raw, bool):
		return 1
	try:
		value = float(str(raw).strip()) if not isinstance(raw, (int, float, Decimal)) else float(raw)
	except (TypeError, ValueError):
		return 1
	if not math.isfinite(value):
		return 1
	return max(1, int(value))


def parse_price(raw: Any) -> Decimal:
	if raw is None or isinstance(raw, bool):
		raise InvalidPrice(raw)
	try:
		value = Decimal(str(raw).strip())
	except (InvalidOperation, ValueError):
		raise InvalidPrice(raw) from None
	# must also survive as a JSON double
	if not value.is_finite() or not math.isfinite(float(value)):
		raise InvalidPrice(raw)
	return value


def _blank_to_none(value: str | None) -> str | None:
	if value is None:
		return None
	return value if value.strip() else None


class DraftLedger:
	"""Locally entered line items and receipt metadata.

	Every mutation notifies the registered listeners, which is how the owning
	session clears a stale error banner.
	"""

	def __init__(self) -> None:
		self._items: list[LineItem] = []
		self._customer_name: str | None = None
		self._notes: str | None = None
		self._listeners: list[Listener] = []

	def subscribe(self, listener: Listener) -> None:
		self._listeners.append(listener)

	def _changed(self) -> None:
		for listener in self._listeners:
			listener()

	@property
	def items(self) -> tuple[LineItem, ...]:
		return tuple(self._items)

	@property
	def customer_name(self) -> str | None:
		return self._customer_name

	@property
	def notes(self) -> str | None:
		return self._notes

	def set_customer_name(self, value: str | None) -> None:
		self._customer_name = _blank_to_none(value)
		self._changed()

	def set_notes(self, value: str | None) -> None:
		self._notes = _blank_to_none(value)
		self._changed()

	def add_item(self, name: Any, quantity: Any, price: Any) -> LineItem:
		name = str(name or "").strip()
		if not name:
			raise EmptyName()
		item = LineItem(name=name, quantity=coerce_quantity(quantity), price=parse_price(price))
		self._items.append(item)
		log.debug("item added", extra={"item_name": item.name, "rows": len(self._items)})
		self._changed()
		return item

	def remove_item(self, index: int) -> None:
		if not 0 <= index < len(self._items):
			log.debug("ignoring remove of missing row %s", index)
			return
		del self._items[index]
		self._changed()

	def reset(self) -> None:
		self._items.clear()
		self._customer_name = None
		self._notes = None
		self._changed()

	def subtotal(self) -> Decimal:
		return sum((it.line_total for it in self._items), Decimal(0))

	def snapshot(self) -> Draft:
		return Draft(
			customer_name=self._customer_name,
			notes=self._notes,
			items=tuple(self._items),
		)
