"""Cumulative holdings from an asset's transaction ledger."""

from typing import Iterable, Optional

from .models import Transaction


def cumulative_at(transactions: Iterable[Transaction], t: float) -> tuple[float, float]:
    """Quantity owned and cost basis paid as of time ``t``.

    Every transaction dated on or before ``t`` contributes its full quantity
    and total cost; later ones contribute nothing. Entries are summed in
    ledger order and are not validated.

    Args:
        transactions: The asset's ledger
        t: Epoch milliseconds

    Returns:
        (quantity, cost_basis), (0.0, 0.0) when nothing qualifies
    """
    quantity = 0.0
    cost_basis = 0.0
    for txn in transactions:
        if txn.date <= t:
            quantity += txn.quantity
            cost_basis += txn.total_cost
    return quantity, cost_basis


def first_transaction_date(transactions: Iterable[Transaction]) -> Optional[float]:
    dates = [txn.date for txn in transactions]
    return min(dates) if dates else None
