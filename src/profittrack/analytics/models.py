"""Data models for record aggregation."""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

ZERO = Decimal("0")


@dataclass(frozen=True)
class Period:
    """Inclusive date window with a display label."""
    start: date
    end: date
    label: str

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass
class Vehicle:
    """Vehicle with its static cost attributes."""
    id: str
    name: str
    type: str
    rated_efficiency: Decimal = ZERO  # km per litre
    monthly_loan_payment: Decimal = ZERO
    monthly_labor_cost: Decimal = ZERO
    monthly_maintenance: Decimal = ZERO
    is_active: bool = True


@dataclass
class DailyRecord:
    """One day's trip entry joined with its vehicle."""
    entry_date: date
    vehicle_id: str
    trip_earnings: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    distance: Decimal = ZERO
    fuel_cost: Decimal = ZERO
    toll_expense: Decimal = ZERO
    repair_expense: Decimal = ZERO
    food_expense: Decimal = ZERO
    misc_expense: Decimal = ZERO
    fuel_filled: Decimal = ZERO  # litres
    vehicle: Optional[Vehicle] = None


@dataclass
class PeriodTotals:
    """The four numeric fields needed for trend comparison."""
    trip_earnings: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    distance: Decimal = ZERO


@dataclass
class Summary:
    total_earnings: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    total_distance: Decimal = ZERO
    total_trips: int = 0
    avg_daily_profit: Decimal = ZERO
    profit_margin: Decimal = ZERO


@dataclass
class ExpenseBreakdown:
    """Expense totals per fixed category; amortized categories are per calendar day."""
    fuel: Decimal = ZERO
    toll: Decimal = ZERO
    repair: Decimal = ZERO
    food: Decimal = ZERO
    misc: Decimal = ZERO
    loan_payment: Decimal = ZERO
    labor_cost: Decimal = ZERO
    maintenance: Decimal = ZERO

    def labelled(self) -> List[tuple]:
        """(label, value) pairs in ranking order."""
        return [
            ("Fuel", self.fuel),
            ("Toll", self.toll),
            ("Repairs", self.repair),
            ("Food", self.food),
            ("Miscellaneous", self.misc),
            ("EMI", self.loan_payment),
            ("Driver Salary", self.labor_cost),
            ("Maintenance", self.maintenance),
        ]

    @property
    def total(self) -> Decimal:
        return sum((value for _, value in self.labelled()), ZERO)


@dataclass
class VehiclePerformance:
    id: str
    name: str
    type: str
    total_distance: Decimal = ZERO
    total_earnings: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    trip_count: int = 0
    avg_profit_per_trip: Decimal = ZERO
    fuel_efficiency: Decimal = ZERO
    rated_efficiency: Decimal = ZERO


@dataclass
class TrendData:
    """Percentage change against the preceding window of equal length."""
    profit_change: Decimal = ZERO
    expense_change: Decimal = ZERO
    earnings_change: Decimal = ZERO
    distance_change: Decimal = ZERO


@dataclass
class UserContext:
    """Aggregated view of one user's business over a period."""
    period: Period
    summary: Summary = field(default_factory=Summary)
    expense_breakdown: ExpenseBreakdown = field(default_factory=ExpenseBreakdown)
    vehicles: List[VehiclePerformance] = field(default_factory=list)
    trends: TrendData = field(default_factory=TrendData)
    top_performer: Optional[str] = None
    worst_performer: Optional[str] = None
    highest_expense_category: Optional[str] = None
    has_data: bool = False
