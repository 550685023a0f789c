"""Health log repository: CRUD operations for the encrypted log bank.

The repository mediates between domain objects (Record, FluidIntakeLog,
NutritionGoals, ...) and the SQLite database, using FieldEncryptor to
encrypt/decrypt free-text fields.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any

from companion.core.storage.database import HealthDatabase
from companion.core.storage.encryption import FieldEncryptor
from companion.domains.glp1.domain_logic.models import (
    FluidIntakeLog,
    FluidType,
    FoodAlert,
    FoodItem,
    GoalChangeReason,
    GoalHistoryEntry,
    MedicationPhase,
    MedicationSchedule,
    NutritionGoals,
    Record,
    RecordType,
)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


def to_iso(moment: datetime) -> str:
    """Normalise a datetime to a sortable UTC ISO 8601 string.

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def day_bounds(day: date, tz: tzinfo = timezone.utc) -> tuple[str, str]:
    """Return the [start, end) ISO bounds of a calendar day in ``tz``."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return to_iso(start), to_iso(end)


class HealthLogRepository:
    """CRUD repository for logged records, fluid logs, goals, and schedule.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        encryptor = FieldEncryptor(key="...")
        repo = HealthLogRepository(db, encryptor)

        record_id = repo.add_record(Record(type=RecordType.MEAL, calories=450))
        todays = repo.records_for_day(date.today())
    """

    def __init__(self, database: HealthDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @property
    def database(self) -> HealthDatabase:
        return self._db

    @staticmethod
    def _now_iso() -> str:
        return to_iso(datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def add_record(self, record: Record) -> str:
        """Persist a logged record.

        Returns:
            The record ID.
        """
        conn = self._db.connection
        conn.execute(
            """INSERT INTO records (
                id, type, date, value_enc, note_enc,
                calories, carbs, protein, fat, fiber, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.id,
                record.type.value,
                to_iso(record.date),
                self._enc.encrypt(record.value),
                self._enc.encrypt(record.note),
                record.calories,
                record.carbs,
                record.protein,
                record.fat,
                record.fiber,
                self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved %s record %s", record.type.value, record.id)
        return record.id

    def get_record(self, record_id: str) -> Record | None:
        row = self._db.connection.execute(
            "SELECT * FROM records WHERE id = ?", (record_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    def update_record(
        self,
        record_id: str,
        *,
        value: str | None,
        note: str | None,
        calories: float | None = None,
        carbs: float | None = None,
        protein: float | None = None,
        fat: float | None = None,
        fiber: float | None = None,
    ) -> Record | None:
        """Replace a record's value, note, and macros.

        Returns:
            The edited record, or None if no record has that ID.
        """
        existing = self.get_record(record_id)
        if existing is None:
            return None

        edited = existing.edited(
            value=value,
            note=note,
            calories=calories,
            carbs=carbs,
            protein=protein,
            fat=fat,
            fiber=fiber,
        )
        conn = self._db.connection
        conn.execute(
            """UPDATE records SET
                value_enc = ?, note_enc = ?,
                calories = ?, carbs = ?, protein = ?, fat = ?, fiber = ?,
                updated_at = ?
               WHERE id = ?""",
            (
                self._enc.encrypt(edited.value),
                self._enc.encrypt(edited.note),
                edited.calories,
                edited.carbs,
                edited.protein,
                edited.fat,
                edited.fiber,
                self._now_iso(),
                record_id,
            ),
        )
        conn.commit()
        logger.info("Updated record %s", record_id)
        return edited

    def delete_record(self, record_id: str) -> bool:
        """Delete a single record.

        Returns:
            True if a record was found and deleted, False otherwise.
        """
        conn = self._db.connection
        cursor = conn.execute("DELETE FROM records WHERE id = ?", (record_id,))
        conn.commit()
        if cursor.rowcount == 0:
            return False
        logger.info("Deleted record %s", record_id)
        return True

    def get_records(
        self,
        *,
        since: str | None = None,
        until: str | None = None,
        record_type: RecordType | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        """Query records with optional filters.

        Args:
            since: ISO 8601 lower bound (inclusive).
            until: ISO 8601 upper bound (exclusive).
            record_type: Restrict to one record type.
            limit: Maximum results to return.

        Returns:
            Records in chronological order (oldest first).
        """
        conditions: list[str] = []
        params: list[Any] = []

        if since:
            conditions.append("date >= ?")
            params.append(since)
        if until:
            conditions.append("date < ?")
            params.append(until)
        if record_type is not None:
            conditions.append("type = ?")
            params.append(record_type.value)

        query = "SELECT * FROM records"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY date ASC, created_at ASC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def records_for_day(self, day: date, tz: tzinfo = timezone.utc) -> list[Record]:
        """All records whose date falls on ``day`` in ``tz``."""
        since, until = day_bounds(day, tz)
        return self.get_records(since=since, until=until)

    def count_records(self) -> int:
        row = self._db.connection.execute("SELECT COUNT(*) FROM records").fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Fluid logs
    # ------------------------------------------------------------------

    def add_fluid_log(self, log: FluidIntakeLog) -> str:
        if log.amount_ml <= 0:
            raise RepositoryError(f"Fluid amount must be positive, got {log.amount_ml!r}")
        conn = self._db.connection
        conn.execute(
            """INSERT INTO fluid_logs (id, date, amount_ml, type, notes_enc, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                log.id,
                to_iso(log.date),
                log.amount_ml,
                log.type.value,
                self._enc.encrypt(log.notes),
                self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved fluid log %s (%s)", log.id, log.type.value)
        return log.id

    def fluid_logs_for_day(self, day: date, tz: tzinfo = timezone.utc) -> list[FluidIntakeLog]:
        """Fluid logs on ``day`` in ``tz``, newest first."""
        since, until = day_bounds(day, tz)
        rows = self._db.connection.execute(
            """SELECT * FROM fluid_logs WHERE date >= ? AND date < ?
               ORDER BY date DESC""",
            (since, until),
        ).fetchall()
        return [self._row_to_fluid_log(row) for row in rows]

    def get_fluid_logs(
        self,
        *,
        since: str | None = None,
        until: str | None = None,
    ) -> list[FluidIntakeLog]:
        """Fluid logs in ``[since, until)``, oldest first."""
        conditions: list[str] = []
        params: list[Any] = []
        if since:
            conditions.append("date >= ?")
            params.append(since)
        if until:
            conditions.append("date < ?")
            params.append(until)

        query = "SELECT * FROM fluid_logs"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY date ASC"
        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_fluid_log(row) for row in rows]

    def _row_to_fluid_log(self, row: Any) -> FluidIntakeLog:
        return FluidIntakeLog(
            id=row["id"],
            date=datetime.fromisoformat(row["date"]),
            amount_ml=row["amount_ml"],
            type=FluidType(row["type"]),
            notes=self._enc.decrypt(row["notes_enc"]),
        )

    def delete_fluid_log(self, log_id: str) -> bool:
        conn = self._db.connection
        cursor = conn.execute("DELETE FROM fluid_logs WHERE id = ?", (log_id,))
        conn.commit()
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Nutrition goals (singleton + append-only history)
    # ------------------------------------------------------------------

    def get_goals(self) -> NutritionGoals | None:
        """Load the active goals with their full history, or None if never set."""
        conn = self._db.connection
        row = conn.execute("SELECT * FROM nutrition_goals WHERE id = 1").fetchone()
        if row is None:
            return None

        return NutritionGoals(
            daily_calories=row["daily_calories"],
            daily_carbs=row["daily_carbs"],
            daily_protein=row["daily_protein"],
            daily_fat=row["daily_fat"],
            daily_fiber=row["daily_fiber"],
            daily_hydration_ml=row["daily_hydration_ml"],
            hydration_types_enabled=frozenset(
                FluidType(t) for t in json.loads(row["hydration_types"])
            ),
            history=tuple(self._load_goal_history()),
            updated_at=from_iso(row["updated_at"]),
        )

    def ensure_goals(self) -> NutritionGoals:
        """Return the active goals, creating the default singleton if missing."""
        goals = self.get_goals()
        if goals is not None:
            return goals
        goals = NutritionGoals()
        self.save_goals(goals)
        logger.info("Created default nutrition goals")
        return goals

    def save_goals(self, goals: NutritionGoals) -> None:
        """Persist the goals singleton and append any new history entries.

        History already in the database is never updated or removed; entries
        are matched by ID and only unseen ones are inserted.
        """
        conn = self._db.connection
        conn.execute(
            """INSERT INTO nutrition_goals (
                id, daily_calories, daily_carbs, daily_protein, daily_fat,
                daily_fiber, daily_hydration_ml, hydration_types, updated_at
            ) VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                daily_calories = excluded.daily_calories,
                daily_carbs = excluded.daily_carbs,
                daily_protein = excluded.daily_protein,
                daily_fat = excluded.daily_fat,
                daily_fiber = excluded.daily_fiber,
                daily_hydration_ml = excluded.daily_hydration_ml,
                hydration_types = excluded.hydration_types,
                updated_at = excluded.updated_at""",
            (
                goals.daily_calories,
                goals.daily_carbs,
                goals.daily_protein,
                goals.daily_fat,
                goals.daily_fiber,
                goals.daily_hydration_ml,
                json.dumps(sorted(t.value for t in goals.hydration_types_enabled)),
                to_iso(goals.updated_at) if goals.updated_at else None,
            ),
        )

        known = {
            row[0] for row in conn.execute("SELECT id FROM goal_history").fetchall()
        }
        seq_row = conn.execute("SELECT MAX(seq) FROM goal_history").fetchone()
        seq = seq_row[0] if seq_row[0] is not None else 0
        appended = 0
        for entry in goals.history:
            if entry.id in known:
                continue
            seq += 1
            conn.execute(
                """INSERT INTO goal_history (
                    id, seq, date, calories, carbs, protein, fat, fiber,
                    hydration_ml, reason, notes_enc
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry.id,
                    seq,
                    to_iso(entry.date),
                    entry.calories,
                    entry.carbs,
                    entry.protein,
                    entry.fat,
                    entry.fiber,
                    entry.hydration_ml,
                    entry.reason.value,
                    self._enc.encrypt(entry.notes),
                ),
            )
            appended += 1
        conn.commit()
        logger.info("Saved nutrition goals (%d history entries appended)", appended)

    def get_goal_history(self, *, limit: int = 50) -> list[GoalHistoryEntry]:
        """Goal history, newest first."""
        return list(reversed(self._load_goal_history()))[:limit]

    def _load_goal_history(self) -> list[GoalHistoryEntry]:
        rows = self._db.connection.execute(
            "SELECT * FROM goal_history ORDER BY seq ASC"
        ).fetchall()
        return [
            GoalHistoryEntry(
                id=row["id"],
                date=datetime.fromisoformat(row["date"]),
                calories=row["calories"],
                carbs=row["carbs"],
                protein=row["protein"],
                fat=row["fat"],
                fiber=row["fiber"],
                hydration_ml=row["hydration_ml"],
                reason=GoalChangeReason(row["reason"]),
                notes=self._enc.decrypt(row["notes_enc"]),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Medication schedule (singleton)
    # ------------------------------------------------------------------

    def get_medication_schedule(self) -> MedicationSchedule | None:
        row = self._db.connection.execute(
            "SELECT * FROM medication_schedule WHERE id = 1"
        ).fetchone()
        if row is None:
            return None
        return MedicationSchedule(
            medication_id=row["medication_id"],
            medication_name=row["medication_name"],
            current_dose=row["current_dose"],
            phase=MedicationPhase(row["phase"]),
            next_dose_date=from_iso(row["next_dose_date"]),
            notes=self._enc.decrypt(row["notes_enc"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def save_medication_schedule(self, schedule: MedicationSchedule) -> None:
        conn = self._db.connection
        conn.execute(
            """INSERT INTO medication_schedule (
                id, medication_id, medication_name, current_dose, phase,
                next_dose_date, notes_enc, updated_at
            ) VALUES (1, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                medication_id = excluded.medication_id,
                medication_name = excluded.medication_name,
                current_dose = excluded.current_dose,
                phase = excluded.phase,
                next_dose_date = excluded.next_dose_date,
                notes_enc = excluded.notes_enc,
                updated_at = excluded.updated_at""",
            (
                schedule.medication_id,
                schedule.medication_name,
                schedule.current_dose,
                schedule.phase.value,
                to_iso(schedule.next_dose_date) if schedule.next_dose_date else None,
                self._enc.encrypt(schedule.notes),
                to_iso(schedule.updated_at) if schedule.updated_at else self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved medication schedule (phase=%s)", schedule.phase.value)

    # ------------------------------------------------------------------
    # Consents
    # ------------------------------------------------------------------

    def get_consents(self) -> dict[str, bool]:
        rows = self._db.connection.execute(
            "SELECT category, status FROM consents"
        ).fetchall()
        return {row["category"]: bool(row["status"]) for row in rows}

    def set_consent(self, category: str, enabled: bool) -> None:
        conn = self._db.connection
        conn.execute(
            """INSERT INTO consents (category, status, date_changed) VALUES (?, ?, ?)
               ON CONFLICT(category) DO UPDATE SET
                   status = excluded.status,
                   date_changed = excluded.date_changed""",
            (category, int(enabled), self._now_iso()),
        )
        conn.commit()

    # ------------------------------------------------------------------
    # Food product cache (key = barcode, overwrite, no expiry)
    # ------------------------------------------------------------------

    def get_cached_product(self, barcode: str) -> FoodItem | None:
        row = self._db.connection.execute(
            "SELECT * FROM food_product_cache WHERE barcode = ?", (barcode,)
        ).fetchone()
        if row is None:
            return None

        alerts: list[FoodAlert] = []
        if row["alerts_json"]:
            try:
                for alert in json.loads(row["alerts_json"]):
                    alerts.append(FoodAlert(
                        title=alert["title"],
                        issued=alert.get("issued"),
                        allergens=tuple(alert.get("allergens", [])),
                        url=alert.get("url"),
                    ))
            except (json.JSONDecodeError, KeyError, TypeError):
                logger.warning("Ignoring unreadable cached alerts for barcode %s", barcode)

        return FoodItem(
            name=row["name"],
            calories=row["calories"],
            carbs=row["carbs"],
            protein=row["protein"],
            fat=row["fat"],
            fiber=row["fiber"],
            alerts=tuple(alerts),
        )

    def cache_product(self, barcode: str, item: FoodItem) -> None:
        alerts_json = json.dumps(
            item.as_dict()["alerts"], separators=(",", ":")
        ) if item.alerts else None
        conn = self._db.connection
        conn.execute(
            """INSERT INTO food_product_cache (
                barcode, name, calories, carbs, protein, fat, fiber, alerts_json, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(barcode) DO UPDATE SET
                name = excluded.name,
                calories = excluded.calories,
                carbs = excluded.carbs,
                protein = excluded.protein,
                fat = excluded.fat,
                fiber = excluded.fiber,
                alerts_json = excluded.alerts_json,
                updated_at = excluded.updated_at""",
            (
                barcode,
                item.name,
                item.calories,
                item.carbs,
                item.protein,
                item.fat,
                item.fiber,
                alerts_json,
                self._now_iso(),
            ),
        )
        conn.commit()

    # ------------------------------------------------------------------
    # Deletion (right to deletion)
    # ------------------------------------------------------------------

    def delete_all_data(self) -> int:
        """Delete ALL logged data: records, fluid logs, goals, schedule, cache.

        Consents and the audit trail are kept.

        Returns:
            Total number of record and fluid log rows deleted.
        """
        conn = self._db.connection
        records = conn.execute("SELECT COUNT(*) FROM records").fetchone()[0]
        fluids = conn.execute("SELECT COUNT(*) FROM fluid_logs").fetchone()[0]

        conn.execute("DELETE FROM records")
        conn.execute("DELETE FROM fluid_logs")
        conn.execute("DELETE FROM goal_history")
        conn.execute("DELETE FROM nutrition_goals")
        conn.execute("DELETE FROM medication_schedule")
        conn.execute("DELETE FROM food_product_cache")
        conn.commit()
        logger.warning("Deleted ALL health log data: %d records, %d fluid logs", records, fluids)
        return records + fluids

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _row_to_record(self, row: Any) -> Record:
        return Record(
            id=row["id"],
            type=RecordType(row["type"]),
            date=datetime.fromisoformat(row["date"]),
            value=self._enc.decrypt(row["value_enc"]),
            note=self._enc.decrypt(row["note_enc"]),
            calories=row["calories"],
            carbs=row["carbs"],
            protein=row["protein"],
            fat=row["fat"],
            fiber=row["fiber"],
        )
