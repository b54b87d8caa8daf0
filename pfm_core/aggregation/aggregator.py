"""
Aggregation Engine

Folds transactions into income/expense totals.

DESIGN DECISION: Aggregation is a single pass of additions, so the
result does not depend on record order. Nothing is rounded: totals keep
whatever precision the amounts had.

Positive amounts are income, negative amounts are expenses (stored as
magnitudes), zero amounts touch neither bucket.
"""

from decimal import Decimal
from typing import Iterable, Optional

from pfm_core.models.ledger import AggregateSummary, PeriodTotals, Transaction


def aggregate(
    transactions: Iterable[Transaction],
    year: Optional[int] = None,
) -> AggregateSummary:
    """
    Sum transactions into twelve monthly buckets.

    The annual bucket of the returned summary is derived from the
    monthly ones.

    Args:
        transactions: Already-validated transactions of one ledger
        year: Year to stamp on the summary (optional)
    """
    income = [Decimal("0")] * 12
    expense = [Decimal("0")] * 12
    count = 0

    for txn in transactions:
        index = txn.month - 1
        if txn.amount > 0:
            income[index] += txn.amount
        elif txn.amount < 0:
            expense[index] += -txn.amount
        count += 1

    return AggregateSummary(
        year=year,
        months=tuple(
            PeriodTotals(income=income[i], expense=expense[i])
            for i in range(12)
        ),
        transaction_count=count,
    )


def aggregate_by_category(
    transactions: Iterable[Transaction],
) -> dict[str, PeriodTotals]:
    """Income and expense totals per category, in first-seen order."""
    income: dict[str, Decimal] = {}
    expense: dict[str, Decimal] = {}

    for txn in transactions:
        income.setdefault(txn.category, Decimal("0"))
        expense.setdefault(txn.category, Decimal("0"))
        if txn.amount > 0:
            income[txn.category] += txn.amount
        elif txn.amount < 0:
            expense[txn.category] += -txn.amount

    return {
        category: PeriodTotals(income=income[category], expense=expense[category])
        for category in income
    }
