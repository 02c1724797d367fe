from __future__ import annotations

import asyncio
import io
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import httpx
from opentelemetry import trace
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from .config import Settings
from .errors import (
	AssetTaintError,
	ExportTimeout,
	ExportWriteError,
	NothingToExport,
	RegionUnavailable,
	RenderFailed,
)
from .render import (
	LINE_HEIGHT,
	NAME_GUTTER,
	PRICE_COLUMN,
	QTY_COLUMN,
	Block,
	ItemRow,
	Logo,
	ReceiptRegion,
	Row,
	Rule,
	Text,
)
from .schemas import ConfirmedReceipt

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
RULE_COLOR = (200, 200, 200)
DASH, GAP = 4, 3
LOGO_MARGIN = 8
RIGHT_TEXT_SHARE = 0.55


def snapshot_filename(brand_name: str, kind: str, number: int) -> str:
	return f"{brand_name}_{kind}_#{number:04d}.png"


@dataclass(frozen=True)
class ExportResult:
	filename: str
	path: Path
	data: bytes
	size: tuple[int, int]


class AssetLoader:
	"""Loads images embedded in the region, requiring cross-origin read access."""

	def __init__(
		self,
		origin: str,
		timeout_secs: float,
		transport: httpx.AsyncBaseTransport | None = None,
	) -> None:
		self.origin = origin
		self.timeout_secs = timeout_secs
		self._transport = transport

	async def load_all(self, sources: list[str]) -> dict[str, Image.Image]:
		out: dict[str, Image.Image] = {}
		async with httpx.AsyncClient(
			timeout=httpx.Timeout(self.timeout_secs),
			follow_redirects=True,
			transport=self._transport,
		) as client:
			for src in sources:
				if src not in out:
					out[src] = await self.load(client, src)
		return out

	async def load(self, client: httpx.AsyncClient, source: str) -> Image.Image:
		scheme = urlparse(source).scheme
		with tracer.start_as_current_span("export.load_asset") as span:
			span.set_attribute("asset.source", source)
			if scheme in ("http", "https"):
				try:
					blob = await asyncio.wait_for(
						self._fetch(client, source), timeout=self.timeout_secs
					)
				except (asyncio.TimeoutError, httpx.TimeoutException) as e:
					raise ExportTimeout(source, self.timeout_secs) from e
			else:
				blob = self._read_local(source)
			span.set_attribute("asset.bytes", len(blob))
		return self._decode(source, blob)

	async def _fetch(self, client: httpx.AsyncClient, url: str) -> bytes:
		try:
			resp = await client.get(url, headers={"Origin": self.origin})
		except httpx.TimeoutException:
			raise
		except httpx.HTTPError as e:
			raise AssetTaintError(url, f"fetch failed: {e}") from e

		if not resp.is_success:
			raise AssetTaintError(url, f"HTTP {resp.status_code}")

		allowed = resp.headers.get("access-control-allow-origin", "").strip()
		if allowed not in ("*", self.origin):
			# an opaque response would taint the raster
			raise AssetTaintError(
				url, f"origin {self.origin!r} not allowed (got {allowed or 'no header'!r})"
			)
		return resp.content

	def _read_local(self, source: str) -> bytes:
		path = Path(urlparse(source).path if source.startswith("file:") else source)
		try:
			return path.read_bytes()
		except OSError as e:
			raise AssetTaintError(source, f"cannot read file: {e}") from e

	def _decode(self, source: str, blob: bytes) -> Image.Image:
		try:
			img = Image.open(io.BytesIO(blob))
			img.load()
		except (UnidentifiedImageError, OSError) as e:
			raise AssetTaintError(source, "not a decodable image") from e
		return img.convert("RGBA")


class Rasterizer:
	def __init__(self, scale: int, font_path: str | None = None) -> None:
		self.scale = scale
		self.font_path = font_path
		self._fonts: dict[int, ImageFont.ImageFont | ImageFont.FreeTypeFont] = {}
		self._measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))

	def font(self, size: int):
		if size not in self._fonts:
			px = size * self.scale
			if self.font_path:
				try:
					self._fonts[size] = ImageFont.truetype(self.font_path, px)
				except OSError as e:
					raise RenderFailed(f"font {self.font_path!r}: {e}") from e
			else:
				self._fonts[size] = ImageFont.load_default(size=px)
		return self._fonts[size]

	def _width(self, text: str, size: int) -> float:
		# css pixels
		return self._measure.textlength(text, font=self.font(size)) / self.scale

	def wrap(self, text: str, size: int, width: float) -> list[str]:
		lines: list[str] = []
		current = ""
		for word in text.split() or [""]:
			candidate = f"{current} {word}" if current else word
			if self._width(candidate, size) <= width:
				current = candidate
				continue
			if current:
				lines.append(current)
			# break-words for tokens wider than the column
			current = ""
			for ch in word:
				if current and self._width(current + ch, size) > width:
					lines.append(current)
					current = ""
				current += ch
		lines.append(current)
		return lines

	def clip(self, text: str, size: int, width: float) -> str:
		if self._width(text, size) <= width:
			return text
		while text and self._width(text + "…", size) > width:
			text = text[:-1]
		return text + "…"

	def block_height(self, block: Block, content_width: int) -> int:
		if isinstance(block, Logo):
			return block.size + LOGO_MARGIN
		if isinstance(block, Text):
			return LINE_HEIGHT * len(self.wrap(block.text, block.size, content_width))
		if isinstance(block, ItemRow):
			name_width = content_width - QTY_COLUMN - PRICE_COLUMN - NAME_GUTTER
			return LINE_HEIGHT * len(self.wrap(block.name, block.size, name_width))
		if isinstance(block, Rule):
			return 2 * block.margin + 1
		return LINE_HEIGHT

	def render(self, region: ReceiptRegion, assets: dict[str, Image.Image]) -> Image.Image:
		s = self.scale
		heights = [self.block_height(b, region.content_width) for b in region.blocks]
		height = 2 * region.padding + sum(heights)

		canvas = Image.new("RGB", (region.width * s, height * s), WHITE)
		draw = ImageDraw.Draw(canvas)
		left = region.padding
		right = region.width - region.padding
		y = region.padding

		for block, h in zip(region.blocks, heights):
			if isinstance(block, Logo):
				logo = assets[block.source].resize((block.size * s, block.size * s), Image.LANCZOS)
				x = (region.width - block.size) // 2
				canvas.paste(logo, (x * s, y * s), mask=logo.split()[3])
			elif isinstance(block, Text):
				for i, line in enumerate(self.wrap(block.text, block.size, region.content_width)):
					if block.align == "center":
						x = (region.width - self._width(line, block.size)) / 2
					else:
						x = left
					self._text(draw, x, y + i * LINE_HEIGHT, line, block.size, block.bold)
			elif isinstance(block, Row):
				value = self.clip(block.right, block.size, region.content_width * RIGHT_TEXT_SHARE)
				self._text(draw, left, y, block.left, block.size, block.bold)
				self._text(draw, right - self._width(value, block.size), y, value, block.size, block.bold)
			elif isinstance(block, ItemRow):
				name_width = region.content_width - QTY_COLUMN - PRICE_COLUMN - NAME_GUTTER
				for i, line in enumerate(self.wrap(block.name, block.size, name_width)):
					self._text(draw, left, y + i * LINE_HEIGHT, line, block.size)
				qty_right = right - PRICE_COLUMN
				self._text(draw, qty_right - self._width(block.quantity, block.size), y, block.quantity, block.size)
				self._text(draw, right - self._width(block.price, block.size), y, block.price, block.size)
			elif isinstance(block, Rule):
				ry = (y + block.margin) * s
				for x in range(left * s, right * s, (DASH + GAP) * s):
					draw.line([(x, ry), (min(x + DASH * s, right * s), ry)], fill=RULE_COLOR, width=s)
			y += h

		return canvas

	def _text(self, draw: ImageDraw.ImageDraw, x: float, y: float, text: str, size: int, bold: bool = False) -> None:
		s = self.scale
		offset = (LINE_HEIGHT - size) / 2
		draw.text(
			(x * s, (y + offset) * s),
			text,
			font=self.font(size),
			fill=BLACK,
			stroke_width=max(1, s // 3) if bold else 0,
			stroke_fill=BLACK,
		)


class SnapshotExporter:
	"""Rasterizes a confirmed receipt region into a PNG written all-or-nothing."""

	def __init__(
		self,
		settings: Settings,
		transport: httpx.AsyncBaseTransport | None = None,
	) -> None:
		self.settings = settings
		self.assets = AssetLoader(settings.app_origin, settings.asset_timeout_secs, transport)
		self.rasterizer = Rasterizer(settings.export_scale, settings.receipt_font)

	async def export(
		self, receipt: ConfirmedReceipt | None, region: ReceiptRegion | None
	) -> ExportResult:
		if receipt is None:
			raise NothingToExport()
		if region is None or not region.mounted:
			raise RegionUnavailable()
		if not region.blocks:
			raise RegionUnavailable("receipt region is empty")

		with tracer.start_as_current_span("export.snapshot") as span:
			span.set_attribute("receipt.number", receipt.number)
			span.set_attribute("export.scale", self.settings.export_scale)
			t0 = time.perf_counter()

			assets = await self.assets.load_all(region.asset_sources())
			image = self.rasterizer.render(region, assets)

			buf = io.BytesIO()
			image.save(buf, format="PNG")
			data = buf.getvalue()

			filename = snapshot_filename(
				self.settings.brand_name, self.settings.receipt_kind, receipt.number
			)
			path = self._write(filename, data)

			span.set_attribute("export.bytes", len(data))
			span.set_attribute("elapsed_secs", round(time.perf_counter() - t0, 3))

		log.info(
			"snapshot exported",
			extra={"export_filename": filename, "width": image.width, "height": image.height},
		)
		return ExportResult(filename=filename, path=path, data=data, size=image.size)

	def _write(self, filename: str, data: bytes) -> Path:
		directory = Path(self.settings.export_dir)
		target = directory / filename
		try:
			directory.mkdir(parents=True, exist_ok=True)
			fd, tmp = tempfile.mkstemp(dir=directory, suffix=".part")
		except OSError as e:
			raise ExportWriteError(str(directory), str(e)) from e

		try:
			with os.fdopen(fd, "wb") as f:
				f.write(data)
			os.replace(tmp, target)
		except OSError as e:
			Path(tmp).unlink(missing_ok=True)
			raise ExportWriteError(str(target), str(e)) from e
		except BaseException:
			Path(tmp).unlink(missing_ok=True)
			raise
		return target
