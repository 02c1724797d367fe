from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import (
	BaseModel,
	ConfigDict,
	Field,
	StringConstraints,
	field_serializer,
	model_validator,
)
from typing_extensions import Annotated


ItemName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _json_number(value: Decimal) -> int | float:
	return int(value) if value == value.to_integral_value() else float(value)


class LineItem(BaseModel):
	model_config = ConfigDict(frozen=True)

	name: ItemName
	quantity: int = Field(ge=1)
	price: Decimal

	@property
	def line_total(self) -> Decimal:
		return self.quantity * self.price

	@field_serializer("price", when_used="json")
	def _price_number(self, value: Decimal) -> int | float:
		return _json_number(value)


class Draft(BaseModel):
	model_config = ConfigDict(frozen=True)

	customer_name: Optional[str] = None
	notes: Optional[str] = None
	items: tuple[LineItem, ...] = ()

	@property
	def subtotal(self) -> Decimal:
		return sum((it.line_total for it in self.items), Decimal(0))


class ConfirmedReceipt(BaseModel):
	model_config = ConfigDict(frozen=True)

	number: int = Field(gt=0)
	customer_name: Optional[str] = None
	notes: Optional[str] = None
	items: tuple[LineItem, ...] = ()
	total: Decimal

	@field_serializer("total", when_used="json")
	def _total_number(self, value: Decimal) -> int | float:
		return _json_number(value)


class DisplayState(BaseModel):
	"""What the receipt region shows; derived on every read, never stored."""

	model_config = ConfigDict(frozen=True)

	confirmed: bool
	number: Optional[int] = None
	customer_name: Optional[str] = None
	notes: Optional[str] = None
	items: tuple[LineItem, ...] = ()
	total: Decimal

	@property
	def label(self) -> str:
		return f"{self.number:04d}" if self.number is not None else "DRAFT"

	@field_serializer("total", when_used="json")
	def _total_number(self, value: Decimal) -> int | float:
		return _json_number(value)

	@classmethod
	def derive(cls, draft: Draft, receipt: ConfirmedReceipt | None) -> DisplayState:
		if receipt is None:
			return cls(
				confirmed=False,
				customer_name=draft.customer_name,
				notes=draft.notes,
				items=draft.items,
				total=draft.subtotal,
			)
		# per-field precedence; blank confirmed metadata falls back to the draft
		return cls(
			confirmed=True,
			number=receipt.number,
			customer_name=receipt.customer_name or draft.customer_name,
			notes=receipt.notes or draft.notes,
			items=receipt.items,
			total=receipt.total,
		)


# wire format of the receipt-issuing service


class IssueReceiptRequest(BaseModel):
	customer_name: Optional[str]
	items: list[LineItem]
	notes: Optional[str]

	@classmethod
	def from_draft(cls, draft: Draft) -> IssueReceiptRequest:
		return cls(
			customer_name=draft.customer_name or None,
			items=list(draft.items),
			notes=draft.notes or None,
		)


class IssuedReceipt(BaseModel):
	model_config = ConfigDict(extra="ignore")

	number: int = Field(gt=0)
	items: list[LineItem] = Field(default_factory=list)
	total: Optional[Decimal] = None
	subtotal: Optional[Decimal] = None
	customer_name: Optional[str] = None
	notes: Optional[str] = None

	@model_validator(mode="after")
	def _has_amount(self) -> IssuedReceipt:
		if self.total is None and self.subtotal is None:
			raise ValueError("response carries neither total nor subtotal")
		return self

	def to_confirmed(self) -> ConfirmedReceipt:
		return ConfirmedReceipt(
			number=self.number,
			customer_name=self.customer_name,
			notes=self.notes,
			items=tuple(self.items),
			total=self.total if self.total is not None else self.subtotal,
		)


class ConnectionStatus(BaseModel):
	ok: bool
	url: str
	status_code: Optional[int] = None
	detail: Optional[str] = None


# local REST surface


class ItemIn(BaseModel):
	# raw user input; the ledger coerces and validates
	name: Any = ""
	quantity: Any = 1
	price: Any = None


class MetaIn(BaseModel):
	customer_name: Optional[str] = None
	notes: Optional[str] = None


class SessionView(BaseModel):
	phase: str
	display: DisplayState
	label: str
	subtotal: Decimal
	error: Optional[str] = None
	submitting: bool = False
	exporting: bool = False

	@field_serializer("subtotal", when_used="json")
	def _subtotal_number(self, value: Decimal) -> int | float:
		return _json_number(value)


class ErrorBody(BaseModel):
	code: str
	message: str
	details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
	error: ErrorBody
