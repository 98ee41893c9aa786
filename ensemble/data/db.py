"""
Ensemble — Household Database.

SQLite storage for households, members, join requests, events, tasks and
notifications. A single Database owns the connection; the repositories
(HouseholdDB, EventDB, TaskDB, NotificationDB) share it so that a
multi-row operation can run inside one transaction.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterator

from ensemble.data.models import (
    Event,
    EventCategory,
    Household,
    JoinRequest,
    JoinRequestStatus,
    Member,
    MemberRole,
    MemberType,
    Notification,
    NotificationKind,
    PetType,
    Recurrence,
    Task,
    TaskStatus,
    Visibility,
)

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS households (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    invite_code TEXT NOT NULL UNIQUE,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS members (
    id           TEXT PRIMARY KEY,
    household_id TEXT NOT NULL REFERENCES households(id) ON DELETE CASCADE,
    user_id      TEXT,
    role         TEXT NOT NULL DEFAULT 'MEMBER',
    type         TEXT NOT NULL DEFAULT 'ADULT',
    nickname     TEXT,
    age          INTEGER,
    pet_type     TEXT,
    color        TEXT NOT NULL,
    UNIQUE (user_id, household_id)
);

CREATE TABLE IF NOT EXISTS join_requests (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    household_id TEXT NOT NULL REFERENCES households(id) ON DELETE CASCADE,
    status       TEXT NOT NULL DEFAULT 'PENDING',
    created_at   TEXT NOT NULL,
    UNIQUE (user_id, household_id)
);

CREATE TABLE IF NOT EXISTS event_series (
    id         TEXT PRIMARY KEY,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS events (
    id           TEXT PRIMARY KEY,
    household_id TEXT NOT NULL REFERENCES households(id) ON DELETE CASCADE,
    series_id    TEXT REFERENCES event_series(id),
    title        TEXT NOT NULL,
    description  TEXT,
    start_time   TEXT NOT NULL,
    end_time     TEXT NOT NULL,
    category     TEXT NOT NULL,
    visibility   TEXT NOT NULL DEFAULT 'HOUSEHOLD'
);

CREATE INDEX IF NOT EXISTS idx_events_household_start ON events (household_id, start_time);
CREATE INDEX IF NOT EXISTS idx_events_series ON events (series_id);

CREATE TABLE IF NOT EXISTS event_participants (
    event_id  TEXT NOT NULL REFERENCES events(id) ON DELETE CASCADE,
    member_id TEXT NOT NULL REFERENCES members(id) ON DELETE CASCADE,
    PRIMARY KEY (event_id, member_id)
);

CREATE TABLE IF NOT EXISTS tasks (
    id           TEXT PRIMARY KEY,
    household_id TEXT NOT NULL REFERENCES households(id) ON DELETE CASCADE,
    title        TEXT NOT NULL,
    description  TEXT,
    emoji        TEXT,
    recurrence   TEXT NOT NULL DEFAULT 'NONE',
    status       TEXT NOT NULL DEFAULT 'TODO',
    visibility   TEXT NOT NULL DEFAULT 'HOUSEHOLD',
    due_date     TEXT,
    completed_at TEXT,
    completed_by TEXT,
    created_at   TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS task_assignees (
    task_id   TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    member_id TEXT NOT NULL REFERENCES members(id) ON DELETE CASCADE,
    PRIMARY KEY (task_id, member_id)
);

CREATE TABLE IF NOT EXISTS notifications (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    household_id TEXT NOT NULL,
    kind         TEXT NOT NULL,
    title        TEXT NOT NULL,
    message      TEXT NOT NULL,
    resource_id  TEXT,
    read         INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications (user_id, created_at);
"""


def new_id() -> str:
    return uuid.uuid4().hex


def _now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _dt_to_db(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="seconds")


def _dt_from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _to_db(value):
    """Convert an enum/datetime/bool field value to its column form."""
    if isinstance(value, datetime):
        return _dt_to_db(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Enum):
        return value.value
    return value


class Database:
    """Owns the SQLite connection and the transaction boundary.

    ``transaction()`` is re-entrant: nested blocks join the outermost one,
    which commits on success and rolls everything back on any exception.
    """

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from ensemble.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; BEGIN/COMMIT are issued by transaction().
        self._conn = sqlite3.connect(
            db_path, isolation_level=None, check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._depth = 0
        self._init_db()

    @property
    def path(self) -> str:
        return self._db_path

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        outermost = self._depth == 0
        if outermost:
            self._conn.execute("BEGIN")
        self._depth += 1
        try:
            yield self._conn
        except BaseException:
            self._depth -= 1
            if outermost:
                self._conn.execute("ROLLBACK")
                logger.warning("Transaction rolled back on %s", self._db_path)
            raise
        else:
            self._depth -= 1
            if outermost:
                self._conn.execute("COMMIT")

    def close(self) -> None:
        self._conn.close()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        self._conn.executescript(_SCHEMA)
        logger.debug("Ensemble schema initialized at %s", self._db_path)


def _update_row(
    conn: sqlite3.Connection, table: str, row_id: str, fields: dict, allowed: set[str],
) -> bool:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update {table} columns: {sorted(unknown)}")
    if not fields:
        return False
    assignments = ", ".join(f"{col} = ?" for col in fields)
    params = [_to_db(v) for v in fields.values()] + [row_id]
    cursor = conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", params)
    return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Households, members and join requests
# ---------------------------------------------------------------------------


class HouseholdDB:
    """Storage for households, their members and pending join requests."""

    _MEMBER_COLUMNS = {"role", "type", "nickname", "age", "pet_type", "color"}

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_household(row: sqlite3.Row) -> Household:
        return Household(
            id=row["id"],
            name=row["name"],
            invite_code=row["invite_code"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_member(row: sqlite3.Row) -> Member:
        return Member(
            id=row["id"],
            household_id=row["household_id"],
            user_id=row["user_id"],
            role=MemberRole(row["role"]),
            type=MemberType(row["type"]),
            nickname=row["nickname"],
            age=row["age"],
            pet_type=PetType(row["pet_type"]) if row["pet_type"] else None,
            color=row["color"],
        )

    @staticmethod
    def _row_to_request(row: sqlite3.Row) -> JoinRequest:
        return JoinRequest(
            id=row["id"],
            user_id=row["user_id"],
            household_id=row["household_id"],
            status=JoinRequestStatus(row["status"]),
            created_at=row["created_at"],
        )

    # --- households ---

    def create_household(self, name: str, invite_code: str) -> Household:
        household = Household(
            id=new_id(), name=name.strip(), invite_code=invite_code, created_at=_now_iso(),
        )
        with self._db.transaction() as conn:
            conn.execute(
                "INSERT INTO households (id, name, invite_code, created_at) VALUES (?, ?, ?, ?)",
                (household.id, household.name, household.invite_code, household.created_at),
            )
        logger.info("Household created: %s '%s'", household.id, household.name)
        return household

    def get_household(self, household_id: str) -> Household | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM households WHERE id = ?", (household_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_household(row)

    def find_by_invite_code(self, invite_code: str) -> Household | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM households WHERE invite_code = ?", (invite_code.strip(),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_household(row)

    def invite_code_exists(self, invite_code: str) -> bool:
        return self.find_by_invite_code(invite_code) is not None

    def list_households(self) -> list[Household]:
        with self._db.transaction() as conn:
            rows = conn.execute("SELECT * FROM households ORDER BY created_at").fetchall()
        return [self._row_to_household(r) for r in rows]

    # --- members ---

    def add_member(
        self,
        household_id: str,
        color: str,
        role: MemberRole = MemberRole.MEMBER,
        type: MemberType = MemberType.ADULT,
        user_id: str | None = None,
        nickname: str | None = None,
        age: int | None = None,
        pet_type: PetType | None = None,
    ) -> Member:
        member = Member(
            id=new_id(),
            household_id=household_id,
            user_id=user_id,
            role=role,
            type=type,
            nickname=nickname,
            age=age,
            pet_type=pet_type,
            color=color,
        )
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO members
                    (id, household_id, user_id, role, type, nickname, age, pet_type, color)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    member.id, household_id, user_id, role.value, type.value,
                    nickname, age, _to_db(pet_type), color,
                ),
            )
        logger.info(
            "Member added: %s (%s/%s) to household %s",
            member.id, type.value, role.value, household_id,
        )
        return member

    def get_member(self, member_id: str) -> Member | None:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM members WHERE id = ?", (member_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_member(row)

    def find_member(self, user_id: str, household_id: str) -> Member | None:
        """Return the member profile linking a user account to a household."""
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM members WHERE user_id = ? AND household_id = ?",
                (user_id, household_id),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_member(row)

    def list_members(
        self, household_id: str, with_account_only: bool = False, role: MemberRole | None = None,
    ) -> list[Member]:
        query = "SELECT * FROM members WHERE household_id = ?"
        params: list = [household_id]
        if with_account_only:
            query += " AND user_id IS NOT NULL"
        if role is not None:
            query += " AND role = ?"
            params.append(role.value)
        query += " ORDER BY rowid"
        with self._db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_member(r) for r in rows]

    def get_members(self, member_ids: list[str]) -> list[Member]:
        if not member_ids:
            return []
        placeholders = ", ".join("?" for _ in member_ids)
        with self._db.transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM members WHERE id IN ({placeholders}) ORDER BY rowid",
                list(member_ids),
            ).fetchall()
        return [self._row_to_member(r) for r in rows]

    def update_member(self, member_id: str, **fields) -> bool:
        with self._db.transaction() as conn:
            updated = _update_row(conn, "members", member_id, fields, self._MEMBER_COLUMNS)
        if updated:
            logger.info("Member %s updated: %s", member_id, sorted(fields))
        return updated

    def delete_member(self, member_id: str) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM members WHERE id = ?", (member_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Member %s deleted", member_id)
        return deleted

    # --- join requests ---

    def create_join_request(self, user_id: str, household_id: str) -> JoinRequest:
        request = JoinRequest(
            id=new_id(),
            user_id=user_id,
            household_id=household_id,
            status=JoinRequestStatus.PENDING,
            created_at=_now_iso(),
        )
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO join_requests (id, user_id, household_id, status, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (request.id, user_id, household_id, request.status.value, request.created_at),
            )
        logger.info("Join request %s: user %s -> household %s", request.id, user_id, household_id)
        return request

    def get_join_request(self, request_id: str) -> JoinRequest | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM join_requests WHERE id = ?", (request_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_request(row)

    def find_join_request(self, user_id: str, household_id: str) -> JoinRequest | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM join_requests WHERE user_id = ? AND household_id = ?",
                (user_id, household_id),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_request(row)

    def set_join_request_status(self, request_id: str, status: JoinRequestStatus) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE join_requests SET status = ? WHERE id = ?",
                (status.value, request_id),
            )
        updated = cursor.rowcount > 0
        if updated:
            logger.info("Join request %s -> %s", request_id, status.value)
        return updated

    def list_join_requests(
        self, household_id: str, status: JoinRequestStatus | None = None,
    ) -> list[JoinRequest]:
        query = "SELECT * FROM join_requests WHERE household_id = ?"
        params: list = [household_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY created_at"
        with self._db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_request(r) for r in rows]


# ---------------------------------------------------------------------------
# Events and series
# ---------------------------------------------------------------------------


class EventDB:
    """Storage for events, their series anchors and participants."""

    _EVENT_COLUMNS = {
        "title", "description", "start_time", "end_time", "category", "visibility",
    }

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_event(row: sqlite3.Row, participant_ids: list[str]) -> Event:
        return Event(
            id=row["id"],
            household_id=row["household_id"],
            series_id=row["series_id"],
            title=row["title"],
            description=row["description"],
            start=_dt_from_db(row["start_time"]),
            end=_dt_from_db(row["end_time"]),
            category=EventCategory(row["category"]),
            visibility=Visibility(row["visibility"]),
            participant_ids=participant_ids,
        )

    def _hydrate(self, conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[Event]:
        if not rows:
            return []
        ids = [r["id"] for r in rows]
        placeholders = ", ".join("?" for _ in ids)
        participants: dict[str, list[str]] = {i: [] for i in ids}
        for p in conn.execute(
            f"SELECT event_id, member_id FROM event_participants "
            f"WHERE event_id IN ({placeholders}) ORDER BY rowid",
            ids,
        ).fetchall():
            participants[p["event_id"]].append(p["member_id"])
        return [self._row_to_event(r, participants[r["id"]]) for r in rows]

    # --- series anchors ---

    def create_series(self) -> str:
        series_id = new_id()
        with self._db.transaction() as conn:
            conn.execute(
                "INSERT INTO event_series (id, created_at) VALUES (?, ?)",
                (series_id, _now_iso()),
            )
        logger.info("Event series created: %s", series_id)
        return series_id

    def series_exists(self, series_id: str) -> bool:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT 1 FROM event_series WHERE id = ?", (series_id,),
            ).fetchone()
        return row is not None

    def delete_series(self, series_id: str) -> int:
        """Delete every event of a series, then the anchor. Returns events removed."""
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM events WHERE series_id = ?", (series_id,))
            removed = cursor.rowcount
            conn.execute("DELETE FROM event_series WHERE id = ?", (series_id,))
        logger.info("Event series %s deleted (%d events)", series_id, removed)
        return removed

    # --- events ---

    def add_event(
        self,
        household_id: str,
        title: str,
        start: datetime,
        end: datetime,
        category: EventCategory,
        visibility: Visibility = Visibility.HOUSEHOLD,
        description: str | None = None,
        series_id: str | None = None,
        participant_ids: list[str] | None = None,
    ) -> Event:
        event = Event(
            id=new_id(),
            household_id=household_id,
            series_id=series_id,
            title=title,
            description=description,
            start=start,
            end=end,
            category=category,
            visibility=visibility,
            participant_ids=list(participant_ids or []),
        )
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO events
                    (id, household_id, series_id, title, description,
                     start_time, end_time, category, visibility)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id, household_id, series_id, title, description,
                    _dt_to_db(start), _dt_to_db(end), category.value, visibility.value,
                ),
            )
            conn.executemany(
                "INSERT INTO event_participants (event_id, member_id) VALUES (?, ?)",
                [(event.id, m) for m in event.participant_ids],
            )
        logger.info("Event added: %s '%s' at %s", event.id, title, _dt_to_db(start))
        return event

    def get_event(self, event_id: str) -> Event | None:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
            if row is None:
                return None
            return self._hydrate(conn, [row])[0]

    def list_series_events(self, series_id: str) -> list[Event]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM events WHERE series_id = ? ORDER BY start_time",
                (series_id,),
            ).fetchall()
            return self._hydrate(conn, rows)

    def list_events(
        self,
        household_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Event]:
        """Events overlapping [start, end), ordered by start time."""
        query = "SELECT * FROM events WHERE household_id = ?"
        params: list = [household_id]
        if end is not None:
            query += " AND start_time < ?"
            params.append(_dt_to_db(end))
        if start is not None:
            query += " AND end_time > ?"
            params.append(_dt_to_db(start))
        query += " ORDER BY start_time"
        with self._db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
            return self._hydrate(conn, rows)

    def update_event(self, event_id: str, **fields) -> bool:
        """Update columns of one event. ``start``/``end`` map to the time columns."""
        if "start" in fields:
            fields["start_time"] = fields.pop("start")
        if "end" in fields:
            fields["end_time"] = fields.pop("end")
        with self._db.transaction() as conn:
            updated = _update_row(conn, "events", event_id, fields, self._EVENT_COLUMNS)
        if updated:
            logger.info("Event %s updated: %s", event_id, sorted(fields))
        return updated

    def set_participants(self, event_id: str, member_ids: list[str]) -> None:
        """Replace the participant list (delete all, re-insert)."""
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM event_participants WHERE event_id = ?", (event_id,))
            conn.executemany(
                "INSERT INTO event_participants (event_id, member_id) VALUES (?, ?)",
                [(event_id, m) for m in dict.fromkeys(member_ids)],
            )

    def delete_event(self, event_id: str) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Event %s deleted", event_id)
        return deleted


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskDB:
    """Storage for household tasks and their assignees."""

    _TASK_COLUMNS = {
        "title", "description", "emoji", "recurrence", "status", "visibility",
        "due_date", "completed_at", "completed_by",
    }

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_task(row: sqlite3.Row, assignee_ids: list[str]) -> Task:
        return Task(
            id=row["id"],
            household_id=row["household_id"],
            title=row["title"],
            description=row["description"],
            emoji=row["emoji"],
            recurrence=Recurrence(row["recurrence"]),
            status=TaskStatus(row["status"]),
            visibility=Visibility(row["visibility"]),
            due_date=_dt_from_db(row["due_date"]),
            completed_at=_dt_from_db(row["completed_at"]),
            completed_by=row["completed_by"],
            created_at=row["created_at"],
            assignee_ids=assignee_ids,
        )

    def _hydrate(self, conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[Task]:
        if not rows:
            return []
        ids = [r["id"] for r in rows]
        placeholders = ", ".join("?" for _ in ids)
        assignees: dict[str, list[str]] = {i: [] for i in ids}
        for a in conn.execute(
            f"SELECT task_id, member_id FROM task_assignees "
            f"WHERE task_id IN ({placeholders}) ORDER BY rowid",
            ids,
        ).fetchall():
            assignees[a["task_id"]].append(a["member_id"])
        return [self._row_to_task(r, assignees[r["id"]]) for r in rows]

    def add_task(
        self,
        household_id: str,
        title: str,
        recurrence: Recurrence = Recurrence.NONE,
        visibility: Visibility = Visibility.HOUSEHOLD,
        description: str | None = None,
        emoji: str | None = None,
        due_date: datetime | None = None,
        assignee_ids: list[str] | None = None,
    ) -> Task:
        task = Task(
            id=new_id(),
            household_id=household_id,
            title=title,
            description=description,
            emoji=emoji,
            recurrence=recurrence,
            status=TaskStatus.TODO,
            visibility=visibility,
            due_date=due_date,
            created_at=_now_iso(),
            assignee_ids=list(dict.fromkeys(assignee_ids or [])),
        )
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO tasks
                    (id, household_id, title, description, emoji, recurrence,
                     status, visibility, due_date, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id, household_id, title, description, emoji, recurrence.value,
                    task.status.value, visibility.value, _dt_to_db(due_date), task.created_at,
                ),
            )
            conn.executemany(
                "INSERT INTO task_assignees (task_id, member_id) VALUES (?, ?)",
                [(task.id, m) for m in task.assignee_ids],
            )
        logger.info("Task added: %s '%s' (%s)", task.id, title, recurrence.value)
        return task

    def get_task(self, task_id: str) -> Task | None:
        with self._db.transaction() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                return None
            return self._hydrate(conn, [row])[0]

    def list_tasks(self, household_id: str, status: TaskStatus | None = None) -> list[Task]:
        """Tasks of a household, soonest due first, undated last."""
        query = "SELECT * FROM tasks WHERE household_id = ?"
        params: list = [household_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY due_date IS NULL, due_date, created_at"
        with self._db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
            return self._hydrate(conn, rows)

    def update_task(self, task_id: str, **fields) -> bool:
        with self._db.transaction() as conn:
            updated = _update_row(conn, "tasks", task_id, fields, self._TASK_COLUMNS)
        if updated:
            logger.info("Task %s updated: %s", task_id, sorted(fields))
        return updated

    def set_assignees(self, task_id: str, member_ids: list[str]) -> None:
        """Replace the assignee list (delete all, re-insert)."""
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM task_assignees WHERE task_id = ?", (task_id,))
            conn.executemany(
                "INSERT INTO task_assignees (task_id, member_id) VALUES (?, ?)",
                [(task_id, m) for m in dict.fromkeys(member_ids)],
            )

    def delete_task(self, task_id: str) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Task %s deleted", task_id)
        return deleted


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationDB:
    """Storage for the per-user notification inbox."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_notification(row: sqlite3.Row) -> Notification:
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            household_id=row["household_id"],
            kind=NotificationKind(row["kind"]),
            title=row["title"],
            message=row["message"],
            resource_id=row["resource_id"],
            read=bool(row["read"]),
            created_at=row["created_at"],
        )

    def add_notification(
        self,
        user_id: str,
        household_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        resource_id: str | None = None,
    ) -> Notification:
        notification = Notification(
            id=new_id(),
            user_id=user_id,
            household_id=household_id,
            kind=kind,
            title=title,
            message=message,
            resource_id=resource_id,
            created_at=datetime.now().isoformat(timespec="microseconds"),
        )
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO notifications
                    (id, user_id, household_id, kind, title, message, resource_id, read, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)
                """,
                (
                    notification.id, user_id, household_id, kind.value, title, message,
                    resource_id, notification.created_at,
                ),
            )
        logger.debug("Notification %s stored for user %s", kind.value, user_id)
        return notification

    def list_for_user(self, user_id: str, limit: int = 20) -> list[Notification]:
        """Latest notifications first."""
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM notifications WHERE user_id = ? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return [self._row_to_notification(r) for r in rows]

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE notifications SET read = 1 WHERE id = ? AND user_id = ?",
                (notification_id, user_id),
            )
        return cursor.rowcount > 0

    def mark_all_read(self, user_id: str) -> int:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0",
                (user_id,),
            )
        logger.info("Marked %d notifications read for user %s", cursor.rowcount, user_id)
        return cursor.rowcount
