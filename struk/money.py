"""
Rupiah and timestamp formatting for the receipt region.

Formatting goes through Babel for the ``id_ID`` locale. A receipt must never
fail to render because of a formatting problem, so both helpers fall back to a
manual rendering instead of raising.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from babel.core import UnknownLocaleError
from babel.dates import format_datetime
from babel.numbers import format_currency

log = logging.getLogger(__name__)

LOCALE = "id_ID"
CURRENCY = "IDR"
# zero fraction digits, space between symbol and amount
RUPIAH_PATTERN = "¤ #,##0"


def _half_up(amount: Any) -> Decimal:
	return Decimal(str(amount or 0)).quantize(Decimal(1), rounding=ROUND_HALF_UP)


def _rounded(amount: Any) -> int:
	try:
		return int(_half_up(amount))
	except (InvalidOperation, ValueError, TypeError):
		return 0


def fallback_rupiah(amount: Any) -> str:
	grouped = f"{_rounded(amount):,}".replace(",", ".")
	return f"Rp {grouped}"


def format_rupiah(amount: Any, locale: str = LOCALE) -> str:
	"""Format ``amount`` as Rupiah, e.g. ``Rp 35.000``."""
	try:
		# half-up, matching fallback_rupiah
		return format_currency(
			_half_up(amount),
			CURRENCY,
			format=RUPIAH_PATTERN,
			locale=locale,
			currency_digits=False,
		)
	except (InvalidOperation, UnknownLocaleError, ValueError, TypeError) as e:
		log.debug("currency formatting fell back: %s", e)
		return fallback_rupiah(amount)


def format_timestamp(moment: datetime, locale: str = LOCALE) -> str:
	try:
		return format_datetime(moment, format="short", locale=locale)
	except (UnknownLocaleError, ValueError, TypeError) as e:
		log.debug("date formatting fell back: %s", e)
		return moment.strftime("%d/%m/%Y %H.%M")
