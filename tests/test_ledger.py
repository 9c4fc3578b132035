from cryptofolio.ledger import cumulative_at, first_transaction_date
from cryptofolio.models import DAY_MS

from conftest import DAY0, make_transaction


def test_cumulative_at_sums_transactions_up_to_t():
    ledger = [
        make_transaction(date=DAY0, quantity=1, price_per_coin=100),
        make_transaction(date=DAY0 + DAY_MS, quantity=2, price_per_coin=110),
        make_transaction(date=DAY0 + 5 * DAY_MS, quantity=0.5, price_per_coin=200),
    ]

    assert cumulative_at(ledger, DAY0 + 2 * DAY_MS) == (3.0, 320.0)
    assert cumulative_at(ledger, DAY0 + 10 * DAY_MS) == (3.5, 420.0)


def test_cumulative_at_includes_transaction_exactly_at_t():
    ledger = [make_transaction(date=DAY0, quantity=1, price_per_coin=100)]
    assert cumulative_at(ledger, DAY0) == (1.0, 100.0)


def test_cumulative_at_before_first_transaction_is_zero():
    ledger = [make_transaction(date=DAY0)]
    assert cumulative_at(ledger, DAY0 - 1) == (0.0, 0.0)
    assert cumulative_at([], DAY0) == (0.0, 0.0)


def test_cumulative_at_ignores_ledger_order():
    later = make_transaction(date=DAY0 + DAY_MS, quantity=2, price_per_coin=10)
    earlier = make_transaction(date=DAY0, quantity=1, price_per_coin=10)
    assert cumulative_at([later, earlier], DAY0) == (1.0, 10.0)


def test_first_transaction_date():
    ledger = [make_transaction(date=DAY0 + DAY_MS), make_transaction(date=DAY0)]
    assert first_transaction_date(ledger) == DAY0
    assert first_transaction_date([]) is None
