from decimal import Decimal

import pytest

from struk.errors import EmptyName, InvalidPrice
from struk.ledger import DraftLedger, coerce_quantity, parse_price


@pytest.fixture
def ledger():
	return DraftLedger()


def test_empty_ledger_subtotal_is_zero(ledger):
	assert ledger.subtotal() == 0
	assert ledger.items == ()


def test_subtotal_sums_line_totals(ledger):
	ledger.add_item("Produk A", 2, 15000)
	ledger.add_item("Produk B", 1, 5000)
	assert ledger.subtotal() == Decimal("35000")


def test_subtotal_is_exact_for_fractional_prices(ledger):
	for _ in range(3):
		ledger.add_item("Permen", 1, 0.1)
	assert ledger.subtotal() == Decimal("0.3")


def test_add_returns_created_item(ledger):
	item = ledger.add_item("  Kopi  ", "3", "12500")
	assert item.name == "Kopi"
	assert item.quantity == 3
	assert item.price == Decimal("12500")
	assert item.line_total == Decimal("37500")
	assert ledger.items == (item,)


def test_empty_name_is_rejected(ledger):
	with pytest.raises(EmptyName):
		ledger.add_item("", 1, 10)
	with pytest.raises(EmptyName):
		ledger.add_item("   ", 1, 10)
	assert ledger.items == ()


def test_zero_quantity_is_clamped(ledger):
	item = ledger.add_item("X", 0, 10)
	assert item.quantity == 1


@pytest.mark.parametrize(
	"raw, expected",
	[(0, 1), (-3, 1), ("abc", 1), (None, 1), ("", 1), (2.7, 2), ("4", 4), (True, 1), (float("nan"), 1)],
)
def test_coerce_quantity(raw, expected):
	assert coerce_quantity(raw) == expected


def test_non_numeric_price_is_rejected(ledger):
	with pytest.raises(InvalidPrice):
		ledger.add_item("X", 1, "abc")
	assert ledger.items == ()


@pytest.mark.parametrize("raw", ["abc", "", None, "NaN", "inf", float("inf"), False, "1e5000", "-1e400"])
def test_parse_price_rejects_non_finite(raw):
	with pytest.raises(InvalidPrice):
		parse_price(raw)


def test_identical_items_are_not_merged(ledger):
	ledger.add_item("X", 1, 10)
	ledger.add_item("X", 1, 10)
	assert len(ledger.items) == 2


def test_remove_first_of_two(ledger):
	ledger.add_item("A", 1, 10)
	second = ledger.add_item("B", 1, 20)
	ledger.remove_item(0)
	assert ledger.items == (second,)


@pytest.mark.parametrize("index", [2, -1, 99])
def test_remove_out_of_range_is_ignored(ledger, index):
	ledger.add_item("A", 1, 10)
	ledger.add_item("B", 1, 20)
	ledger.remove_item(index)
	assert len(ledger.items) == 2


def test_reset_clears_everything(ledger):
	ledger.set_customer_name("Budi")
	ledger.set_notes("simpan invoice")
	ledger.add_item("A", 1, 10)
	ledger.reset()
	draft = ledger.snapshot()
	assert draft.customer_name is None
	assert draft.notes is None
	assert draft.items == ()


def test_blank_metadata_is_none(ledger):
	ledger.set_customer_name("   ")
	assert ledger.customer_name is None


def test_listeners_fire_on_every_mutation(ledger):
	calls = []
	ledger.subscribe(lambda: calls.append(1))
	ledger.add_item("A", 1, 10)
	ledger.set_notes("n")
	ledger.set_customer_name("c")
	ledger.remove_item(0)
	ledger.reset()
	assert len(calls) == 5


def test_failed_add_does_not_notify(ledger):
	calls = []
	ledger.subscribe(lambda: calls.append(1))
	with pytest.raises(InvalidPrice):
		ledger.add_item("A", 1, "x")
	assert calls == []
