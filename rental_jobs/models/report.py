# rental_jobs/models/report.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional, Union
from pydantic import BaseModel, PlainSerializer


def money_to_json(value: Decimal) -> Union[int, float]:
    """El cálculo es en Decimal; en el JSON el dinero sale como número."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


Money = Annotated[Decimal, PlainSerializer(money_to_json, when_used="json")]


class ReportPeriod(BaseModel):
    month: int
    year: int
    startDate: datetime
    endDate: datetime


class ReportSummary(BaseModel):
    totalIncome: Money
    totalExpense: Money
    profitLoss: Money
    transactionCount: int


class MonthlyReport(BaseModel):
    period: ReportPeriod
    apartment: Optional[Dict[str, Any]] = None
    summary: ReportSummary
    incomeByCategory: Dict[str, Money]
    expensesByCategory: Dict[str, Money]
    transactions: List[Dict[str, Any]]
    generatedAt: datetime
    generatedBy: str
