"""Period resolution and record aggregation."""
from .models import (
    Period,
    Vehicle,
    DailyRecord,
    PeriodTotals,
    Summary,
    ExpenseBreakdown,
    VehiclePerformance,
    TrendData,
    UserContext,
)
from .period import resolve_period, previous_period
from .store import RecordStore, SQLiteRecordStore
from .aggregator import MetricsAggregator, calc_change

__all__ = [
    "Period",
    "Vehicle",
    "DailyRecord",
    "PeriodTotals",
    "Summary",
    "ExpenseBreakdown",
    "VehiclePerformance",
    "TrendData",
    "UserContext",
    "resolve_period",
    "previous_period",
    "RecordStore",
    "SQLiteRecordStore",
    "MetricsAggregator",
    "calc_change",
]
