from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator

import httpx

from .client import ReceiptServiceClient
from .config import Settings
from .errors import EmptyDraft, OperationInProgress, StrukError
from .export import ExportResult, SnapshotExporter
from .ledger import DraftLedger
from .render import ReceiptRegion, build_region
from .schemas import ConfirmedReceipt, ConnectionStatus, DisplayState, LineItem, SessionView

log = logging.getLogger(__name__)


class Phase(str, Enum):
	EMPTY = "empty"
	EDITABLE = "editable"
	CONFIRMED = "confirmed"


class Session:
	"""One drafting session: the ledger, the confirmed receipt and the banner.

	All state lives here. Derived values (display state, phase, subtotal) are
	computed on every read. Submit and export are single-flight: a second call
	while one is running raises ``OperationInProgress``.

	A successful submit keeps the draft as it was; the confirmed receipt takes
	precedence for display until ``reset``.
	"""

	def __init__(
		self,
		settings: Settings,
		client: ReceiptServiceClient | None = None,
		exporter: SnapshotExporter | None = None,
		asset_transport: httpx.AsyncBaseTransport | None = None,
	) -> None:
		self.settings = settings
		self.client = client or ReceiptServiceClient(settings)
		self.exporter = exporter or SnapshotExporter(settings, asset_transport)
		self.ledger = DraftLedger()
		self.ledger.subscribe(self.clear_error)
		self.receipt: ConfirmedReceipt | None = None
		self.error: str | None = None
		self.submitting = False
		self.exporting = False
		self._region: ReceiptRegion | None = None

	# derived

	@property
	def phase(self) -> Phase:
		if self.receipt is not None:
			return Phase.CONFIRMED
		if self.ledger.items:
			return Phase.EDITABLE
		return Phase.EMPTY

	def display_state(self) -> DisplayState:
		return DisplayState.derive(self.ledger.snapshot(), self.receipt)

	def subtotal(self) -> Decimal:
		return self.ledger.subtotal()

	def view(self) -> SessionView:
		display = self.display_state()
		return SessionView(
			phase=self.phase.value,
			display=display,
			label=display.label,
			subtotal=self.subtotal(),
			error=self.error,
			submitting=self.submitting,
			exporting=self.exporting,
		)

	def render_region(self) -> ReceiptRegion:
		"""Mount a fresh receipt region for the current display state."""
		if self._region is not None:
			self._region.detach()
		self._region = build_region(self.display_state(), self.settings)
		return self._region

	# banner

	def clear_error(self) -> None:
		self.error = None

	@contextmanager
	def _surfacing(self) -> Iterator[None]:
		try:
			yield
		except StrukError as e:
			self.error = e.user_message
			raise

	@contextmanager
	def _single_flight(self, flag: str) -> Iterator[None]:
		if getattr(self, flag):
			raise OperationInProgress(flag)
		setattr(self, flag, True)
		try:
			yield
		finally:
			setattr(self, flag, False)

	# commands

	def add_item(self, name: Any, quantity: Any, price: Any) -> LineItem:
		with self._surfacing():
			return self.ledger.add_item(name, quantity, price)

	def remove_item(self, index: int) -> None:
		self.ledger.remove_item(index)

	def set_customer_name(self, value: str | None) -> None:
		self.ledger.set_customer_name(value)

	def set_notes(self, value: str | None) -> None:
		self.ledger.set_notes(value)

	def reset(self) -> None:
		self.ledger.reset()
		self.receipt = None
		if self._region is not None:
			self._region.detach()
			self._region = None
		self.error = None
		log.info("session reset")

	async def submit(self) -> ConfirmedReceipt:
		with self._single_flight("submitting"):
			with self._surfacing():
				draft = self.ledger.snapshot()
				if not draft.items:
					raise EmptyDraft()
				self.error = None
				receipt = await self.client.issue(draft)
		self.receipt = receipt
		return receipt

	async def export_snapshot(self, region: ReceiptRegion | None = None) -> ExportResult:
		with self._single_flight("exporting"):
			with self._surfacing():
				if region is None and self.receipt is not None:
					region = self.render_region()
				return await self.exporter.export(self.receipt, region)

	async def check_connection(self) -> ConnectionStatus:
		return await self.client.check_connection()

	async def close(self) -> None:
		await self.client.close()
