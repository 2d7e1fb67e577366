# rental_jobs/services/aggregation.py
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterable, Dict, List, Optional

from rental_jobs.infra.store import Record
from rental_jobs.models.entities import Transaction, TransactionType
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")


@dataclass
class TransactionAggregate:
    totalIncome: Decimal = ZERO
    totalExpense: Decimal = ZERO
    transactionCount: int = 0
    incomeByCategory: Dict[str, Decimal] = field(default_factory=dict)
    expensesByCategory: Dict[str, Decimal] = field(default_factory=dict)
    items: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def profitLoss(self) -> Decimal:
        return self.totalIncome - self.totalExpense


def as_utc(value: datetime) -> datetime:
    # Table Storage guarda en UTC; un datetime sin zona se toma como UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def convert_instant(value: Optional[datetime], time_format: str) -> Any:
    if value is None:
        return None
    value = as_utc(value)
    if time_format == "epoch_ms":
        return int(value.timestamp() * 1000)
    return value.isoformat()


async def aggregate_transactions(records: AsyncIterable[Record], time_format: str = "iso") -> TransactionAggregate:
    """
    Recorre las transacciones y acumula totales por tipo y por (tipo, categoría).
    Todo en Decimal: la suma es exacta y el resultado no depende del orden de llegada.
    Lo que no es 'income' cuenta como gasto.
    """
    result = TransactionAggregate()
    rows = []
    income = defaultdict(lambda: ZERO)
    expenses = defaultdict(lambda: ZERO)

    async for record in records:
        tx = Transaction.model_validate(record)
        if tx.amount < 0:
            logger.warning("Transacción %s con importe negativo (%s)", tx.id, tx.amount)

        if tx.type == TransactionType.INCOME.value:
            result.totalIncome += tx.amount
            income[tx.category] += tx.amount
        else:
            result.totalExpense += tx.amount
            expenses[tx.category] += tx.amount
        result.transactionCount += 1

        # el item es el documento tal cual; sólo cambian los instantes
        item = {k: v for k, v in record.items() if k != "partition"}
        item["date"] = convert_instant(tx.date, time_format)
        if tx.createdAt is not None:
            item["createdAt"] = convert_instant(tx.createdAt, time_format)
        rows.append((as_utc(tx.date), tx.id, item))

    result.incomeByCategory = dict(sorted(income.items()))
    result.expensesByCategory = dict(sorted(expenses.items()))
    rows.sort(key=lambda row: (row[0], row[1]))
    result.items = [item for _, _, item in rows]
    return result
