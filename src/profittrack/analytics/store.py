"""Read access to trip and vehicle records."""
import asyncio
import sqlite3
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from .models import DailyRecord, PeriodTotals, Vehicle, ZERO
from ..utils.exceptions import RecordFetchError
from ..utils.logger import get_logger

logger = get_logger()


def to_decimal(value) -> Decimal:
    """Convert a stored number (or None) to Decimal."""
    if value is None or value == "":
        return ZERO
    return Decimal(str(value))


class RecordStore(ABC):
    """Read-only view of a user's daily records and vehicles."""

    @abstractmethod
    async def list_daily_records(self, user_id: str, start: date, end: date) -> List[DailyRecord]:
        """Records in [start, end], oldest first, joined with their vehicle."""

    @abstractmethod
    async def list_period_totals(self, user_id: str, start: date, end: date) -> List[PeriodTotals]:
        """Only the numeric totals of each record in [start, end]."""

    @abstractmethod
    async def list_active_vehicles(self, user_id: str) -> List[Vehicle]:
        """Active vehicles in creation order."""


class SQLiteRecordStore(RecordStore):
    """Record store backed by a local SQLite database."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS vehicles (
                    rowid_order INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT UNIQUE,
                    user_id TEXT,
                    vehicle_name TEXT,
                    vehicle_type TEXT,
                    mileage_kmpl REAL,
                    monthly_emi REAL,
                    driver_monthly_salary REAL,
                    expected_monthly_maintenance REAL,
                    is_active INTEGER DEFAULT 1
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS daily_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT,
                    vehicle_id TEXT,
                    entry_date TEXT,
                    trip_earnings REAL,
                    total_expenses REAL,
                    net_profit REAL,
                    kilometers REAL,
                    fuel_cost REAL,
                    toll_expense REAL,
                    repair_expense REAL,
                    food_expense REAL,
                    misc_expense REAL,
                    fuel_filled REAL
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_entries_user_date ON daily_entries(user_id, entry_date)"
            )
            conn.commit()

    def add_vehicle(self, user_id: str, vehicle: Vehicle) -> None:
        """Insert or replace a vehicle."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT OR REPLACE INTO vehicles
                (id, user_id, vehicle_name, vehicle_type, mileage_kmpl, monthly_emi,
                 driver_monthly_salary, expected_monthly_maintenance, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                vehicle.id,
                user_id,
                vehicle.name,
                vehicle.type,
                float(vehicle.rated_efficiency),
                float(vehicle.monthly_loan_payment),
                float(vehicle.monthly_labor_cost),
                float(vehicle.monthly_maintenance),
                1 if vehicle.is_active else 0
            ))
            conn.commit()

    def add_entry(self, user_id: str, record: DailyRecord) -> None:
        """Insert a daily entry."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO daily_entries
                (user_id, vehicle_id, entry_date, trip_earnings, total_expenses, net_profit,
                 kilometers, fuel_cost, toll_expense, repair_expense, food_expense,
                 misc_expense, fuel_filled)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                user_id,
                record.vehicle_id,
                record.entry_date.isoformat(),
                float(record.trip_earnings),
                float(record.total_expenses),
                float(record.net_profit),
                float(record.distance),
                float(record.fuel_cost),
                float(record.toll_expense),
                float(record.repair_expense),
                float(record.food_expense),
                float(record.misc_expense),
                float(record.fuel_filled)
            ))
            conn.commit()

    async def list_daily_records(self, user_id: str, start: date, end: date) -> List[DailyRecord]:
        return await asyncio.to_thread(self._read_daily_records, user_id, start, end)

    def _read_daily_records(self, user_id: str, start: date, end: date) -> List[DailyRecord]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute("""
                    SELECT e.*, v.id AS v_id, v.vehicle_name, v.vehicle_type, v.mileage_kmpl,
                           v.monthly_emi, v.driver_monthly_salary,
                           v.expected_monthly_maintenance, v.is_active
                    FROM daily_entries e
                    LEFT JOIN vehicles v ON v.id = e.vehicle_id
                    WHERE e.user_id = ? AND e.entry_date >= ? AND e.entry_date <= ?
                    ORDER BY e.entry_date ASC, e.id ASC
                """, (user_id, start.isoformat(), end.isoformat())).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to fetch entries for {user_id}: {e}")
            raise RecordFetchError(f"Failed to fetch user data: {e}")

        return [self._row_to_record(row) for row in rows]

    async def list_period_totals(self, user_id: str, start: date, end: date) -> List[PeriodTotals]:
        return await asyncio.to_thread(self._read_period_totals, user_id, start, end)

    def _read_period_totals(self, user_id: str, start: date, end: date) -> List[PeriodTotals]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                rows = conn.execute("""
                    SELECT trip_earnings, total_expenses, net_profit, kilometers
                    FROM daily_entries
                    WHERE user_id = ? AND entry_date >= ? AND entry_date <= ?
                """, (user_id, start.isoformat(), end.isoformat())).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to fetch previous-period totals for {user_id}: {e}")
            raise RecordFetchError(f"Failed to fetch user data: {e}")

        return [
            PeriodTotals(
                trip_earnings=to_decimal(r[0]),
                total_expenses=to_decimal(r[1]),
                net_profit=to_decimal(r[2]),
                distance=to_decimal(r[3])
            )
            for r in rows
        ]

    async def list_active_vehicles(self, user_id: str) -> List[Vehicle]:
        return await asyncio.to_thread(self._read_active_vehicles, user_id)

    def _read_active_vehicles(self, user_id: str) -> List[Vehicle]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(
                    "SELECT * FROM vehicles WHERE user_id = ? AND is_active = 1 ORDER BY rowid_order",
                    (user_id,)
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to fetch vehicles for {user_id}: {e}")
            raise RecordFetchError(f"Failed to fetch vehicle data: {e}")

        return [self._row_to_vehicle(row) for row in rows]

    @staticmethod
    def _row_to_vehicle(row, prefix_id: Optional[str] = None) -> Vehicle:
        return Vehicle(
            id=prefix_id or row["id"],
            name=row["vehicle_name"],
            type=row["vehicle_type"],
            rated_efficiency=to_decimal(row["mileage_kmpl"]),
            monthly_loan_payment=to_decimal(row["monthly_emi"]),
            monthly_labor_cost=to_decimal(row["driver_monthly_salary"]),
            monthly_maintenance=to_decimal(row["expected_monthly_maintenance"]),
            is_active=bool(row["is_active"])
        )

    def _row_to_record(self, row) -> DailyRecord:
        vehicle = self._row_to_vehicle(row, row["v_id"]) if row["v_id"] else None
        return DailyRecord(
            entry_date=date.fromisoformat(row["entry_date"]),
            vehicle_id=row["vehicle_id"],
            trip_earnings=to_decimal(row["trip_earnings"]),
            total_expenses=to_decimal(row["total_expenses"]),
            net_profit=to_decimal(row["net_profit"]),
            distance=to_decimal(row["kilometers"]),
            fuel_cost=to_decimal(row["fuel_cost"]),
            toll_expense=to_decimal(row["toll_expense"]),
            repair_expense=to_decimal(row["repair_expense"]),
            food_expense=to_decimal(row["food_expense"]),
            misc_expense=to_decimal(row["misc_expense"]),
            fuel_filled=to_decimal(row["fuel_filled"]),
            vehicle=vehicle
        )
