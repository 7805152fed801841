"""Record aggregation into the context passed to prompt building."""
import asyncio
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Set

from .models import (
    ZERO,
    DailyRecord,
    ExpenseBreakdown,
    Period,
    PeriodTotals,
    Summary,
    TrendData,
    UserContext,
    Vehicle,
    VehiclePerformance,
)
from .period import previous_period
from .store import RecordStore
from ..utils.logger import get_logger

logger = get_logger()

DAYS_PER_MONTH = Decimal(30)
HUNDRED = Decimal(100)


def calc_change(current: Decimal, previous: Decimal) -> Decimal:
    """Percentage change; growth from zero counts as +100%."""
    if previous == 0:
        return HUNDRED if current > 0 else ZERO
    return (current - previous) / previous * HUNDRED


def rank_descending(items: Sequence[tuple]) -> List[tuple]:
    """Sort (name, value) pairs by value, highest first, keeping input order for ties."""
    return sorted(items, key=lambda item: item[1], reverse=True)


class MetricsAggregator:
    """Reduces a user's records for a period into a UserContext."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def aggregate(self, user_id: str, start: date, end: date, label: str) -> UserContext:
        """
        Aggregate records for [start, end] and compare with the preceding window.

        Args:
            user_id: Owner of the records
            start: First day of the window
            end: Last day of the window
            label: Display label of the window

        Returns:
            UserContext; has_data is False when the window holds no records

        Raises:
            RecordFetchError: If the store cannot be read
        """
        period = Period(start, end, label)
        previous = previous_period(period)

        records, vehicles, previous_totals = await asyncio.gather(
            self.store.list_daily_records(user_id, period.start, period.end),
            self.store.list_active_vehicles(user_id),
            self.store.list_period_totals(user_id, previous.start, previous.end),
        )

        if not records:
            logger.info(f"No records for {period.label} ({period.start} to {period.end})")
            return self.empty_context(period, vehicles)

        summary = self._calculate_summary(records, period.days)
        breakdown = self._calculate_expense_breakdown(records)
        performance = self._calculate_vehicle_performance(records, vehicles)
        trends = self._calculate_trends(summary, previous_totals)
        top, worst = self._find_performers(performance)

        logger.info(
            f"Aggregated {len(records)} records across {len(performance)} vehicles "
            f"for {period.label}"
        )

        return UserContext(
            period=period,
            summary=summary,
            expense_breakdown=breakdown,
            vehicles=performance,
            trends=trends,
            top_performer=top,
            worst_performer=worst,
            highest_expense_category=self._find_highest_expense_category(breakdown),
            has_data=True
        )

    @staticmethod
    def empty_context(period: Period, vehicles: List[Vehicle]) -> UserContext:
        """Context for a window without records: zeroed figures for every vehicle."""
        return UserContext(
            period=period,
            vehicles=[
                VehiclePerformance(
                    id=v.id,
                    name=v.name,
                    type=v.type,
                    fuel_efficiency=v.rated_efficiency,
                    rated_efficiency=v.rated_efficiency
                )
                for v in vehicles
            ],
            has_data=False
        )

    @staticmethod
    def _calculate_summary(records: List[DailyRecord], days: int) -> Summary:
        earnings = sum((r.trip_earnings for r in records), ZERO)
        expenses = sum((r.total_expenses for r in records), ZERO)
        profit = sum((r.net_profit for r in records), ZERO)
        distance = sum((r.distance for r in records), ZERO)

        return Summary(
            total_earnings=earnings,
            total_expenses=expenses,
            net_profit=profit,
            total_distance=distance,
            total_trips=len(records),
            avg_daily_profit=profit / days if days > 0 else ZERO,
            profit_margin=profit / earnings * HUNDRED if earnings > 0 else ZERO
        )

    @staticmethod
    def _calculate_expense_breakdown(records: List[DailyRecord]) -> ExpenseBreakdown:
        breakdown = ExpenseBreakdown()
        vehicles: Dict[str, Vehicle] = {}
        active_days: Dict[str, Set[date]] = defaultdict(set)

        for r in records:
            breakdown.fuel += max(r.fuel_cost, ZERO)
            breakdown.toll += max(r.toll_expense, ZERO)
            breakdown.repair += max(r.repair_expense, ZERO)
            breakdown.food += max(r.food_expense, ZERO)
            breakdown.misc += max(r.misc_expense, ZERO)
            if r.vehicle is not None:
                vehicles[r.vehicle_id] = r.vehicle
                active_days[r.vehicle_id].add(r.entry_date)

        # Monthly costs are spread over the calendar days a vehicle was in use
        for vehicle_id, vehicle in vehicles.items():
            day_count = len(active_days[vehicle_id])
            breakdown.loan_payment += max(vehicle.monthly_loan_payment, ZERO) / DAYS_PER_MONTH * day_count
            breakdown.labor_cost += max(vehicle.monthly_labor_cost, ZERO) / DAYS_PER_MONTH * day_count
            breakdown.maintenance += max(vehicle.monthly_maintenance, ZERO) / DAYS_PER_MONTH * day_count

        return breakdown

    @staticmethod
    def _calculate_vehicle_performance(
        records: List[DailyRecord],
        vehicles: List[Vehicle]
    ) -> List[VehiclePerformance]:
        stats: Dict[str, VehiclePerformance] = {}
        fuel_used: Dict[str, Decimal] = defaultdict(Decimal)

        def track(vehicle: Vehicle) -> None:
            stats[vehicle.id] = VehiclePerformance(
                id=vehicle.id,
                name=vehicle.name,
                type=vehicle.type,
                rated_efficiency=vehicle.rated_efficiency
            )

        for v in vehicles:
            track(v)

        for r in records:
            if r.vehicle_id not in stats:
                # Inactive or deleted vehicle: keep its trips attributed
                track(r.vehicle or Vehicle(id=r.vehicle_id, name=r.vehicle_id, type="unknown"))
            v = stats[r.vehicle_id]
            v.total_distance += r.distance
            v.total_earnings += r.trip_earnings
            v.total_expenses += r.total_expenses
            v.net_profit += r.net_profit
            v.trip_count += 1
            fuel_used[r.vehicle_id] += r.fuel_filled

        for vehicle_id, v in stats.items():
            v.avg_profit_per_trip = v.net_profit / v.trip_count if v.trip_count > 0 else ZERO
            litres = fuel_used[vehicle_id]
            v.fuel_efficiency = v.total_distance / litres if litres > 0 else v.rated_efficiency

        return list(stats.values())

    @staticmethod
    def _calculate_trends(summary: Summary, previous: List[PeriodTotals]) -> TrendData:
        if not previous:
            return TrendData()

        earnings = sum((p.trip_earnings for p in previous), ZERO)
        expenses = sum((p.total_expenses for p in previous), ZERO)
        profit = sum((p.net_profit for p in previous), ZERO)
        distance = sum((p.distance for p in previous), ZERO)

        return TrendData(
            profit_change=calc_change(summary.net_profit, profit),
            expense_change=calc_change(summary.total_expenses, expenses),
            earnings_change=calc_change(summary.total_earnings, earnings),
            distance_change=calc_change(summary.total_distance, distance)
        )

    @staticmethod
    def _find_performers(performance: List[VehiclePerformance]) -> tuple:
        candidates = [(v.name, v.net_profit) for v in performance if v.trip_count > 0]
        if not candidates or all(profit == 0 for _, profit in candidates):
            return None, None

        ranked = rank_descending(candidates)
        top = ranked[0][0]
        worst: Optional[str] = ranked[-1][0] if len(ranked) > 1 else None
        return top, worst

    @staticmethod
    def _find_highest_expense_category(breakdown: ExpenseBreakdown) -> Optional[str]:
        ranked = rank_descending(breakdown.labelled())
        return ranked[0][0] if ranked[0][1] > 0 else None
