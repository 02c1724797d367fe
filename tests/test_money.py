from datetime import datetime
from decimal import Decimal

from struk.money import fallback_rupiah, format_rupiah, format_timestamp


def test_format_rupiah_groups_thousands():
	assert format_rupiah(35000) == "Rp 35.000"
	assert format_rupiah(Decimal("1250000")) == "Rp 1.250.000"


def test_format_rupiah_drops_fraction_digits():
	assert format_rupiah(Decimal("15000.4")) == "Rp 15.000"


def test_format_rupiah_treats_none_as_zero():
	assert format_rupiah(None) == "Rp 0"


def test_unknown_locale_falls_back():
	assert format_rupiah(35000, locale="zz") == "Rp 35.000"


def test_unparseable_amount_falls_back():
	assert format_rupiah("abc") == "Rp 0"


def test_fallback_rounds_half_up():
	assert fallback_rupiah(Decimal("999.5")) == "Rp 1.000"


def test_format_timestamp_never_raises():
	out = format_timestamp(datetime(2026, 10, 19, 14, 5), locale="zz")
	assert "2026" in out or "26" in out


def test_halves_round_up_on_both_paths():
	for amount, expected in [(Decimal("0.5"), "Rp 1"), (Decimal("2.5"), "Rp 3"), (Decimal("1500.5"), "Rp 1.501")]:
		assert format_rupiah(amount) == expected
		assert format_rupiah(amount, locale="zz") == expected
		assert fallback_rupiah(amount) == expected
