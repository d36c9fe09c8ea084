"""SQLite database layer for contractors, jobs, assignments, and the distance cache."""

import sqlite3
from datetime import date, datetime, timedelta
from pathlib import Path

from dispatch.core.schemas import (
    ACTIVE_ASSIGNMENT_STATUSES,
    Assignment,
    Contractor,
    Job,
)

_CONTRACTORS_TABLE = """
CREATE TABLE IF NOT EXISTS contractors (
    id                  INTEGER PRIMARY KEY,
    name                TEXT    NOT NULL,
    working_hours_start TEXT    NOT NULL,
    working_hours_end   TEXT    NOT NULL,
    latitude            REAL    NOT NULL,
    longitude           REAL    NOT NULL,
    average_rating      REAL,
    review_count        INTEGER NOT NULL DEFAULT 0,
    is_active           INTEGER NOT NULL DEFAULT 1,
    trade_type          TEXT
);
"""

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id                       INTEGER PRIMARY KEY,
    desired_start            TEXT    NOT NULL,
    estimated_duration_hours REAL,
    latitude                 REAL    NOT NULL,
    longitude                REAL    NOT NULL,
    job_type                 TEXT    NOT NULL DEFAULT 'Other',
    location                 TEXT    NOT NULL DEFAULT '',
    description              TEXT    NOT NULL DEFAULT ''
);
"""

_ASSIGNMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS assignments (
    id            INTEGER PRIMARY KEY,
    job_id        INTEGER NOT NULL REFERENCES jobs(id),
    contractor_id INTEGER NOT NULL REFERENCES contractors(id),
    status        TEXT    NOT NULL DEFAULT 'Pending'
);
"""

_DISPATCHER_LISTS_TABLE = """
CREATE TABLE IF NOT EXISTS dispatcher_contractor_lists (
    dispatcher_id INTEGER NOT NULL,
    contractor_id INTEGER NOT NULL REFERENCES contractors(id),
    added_at      TEXT    NOT NULL,
    PRIMARY KEY (dispatcher_id, contractor_id)
);
"""

_DISTANCE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS distance_cache (
    cache_key TEXT PRIMARY KEY,
    value     REAL NOT NULL,
    cached_at TEXT NOT NULL
);
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_CONTRACTORS_TABLE)
    conn.execute(_JOBS_TABLE)
    conn.execute(_ASSIGNMENTS_TABLE)
    conn.execute(_DISPATCHER_LISTS_TABLE)
    conn.execute(_DISTANCE_CACHE_TABLE)
    conn.commit()
    return conn


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def upsert_contractor(conn: sqlite3.Connection, contractor: Contractor) -> None:
    """Insert or replace a contractor row."""
    conn.execute(
        """
        INSERT OR REPLACE INTO contractors
            (id, name, working_hours_start, working_hours_end, latitude, longitude,
             average_rating, review_count, is_active, trade_type)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            contractor.id,
            contractor.name,
            contractor.working_hours_start.isoformat(),
            contractor.working_hours_end.isoformat(),
            contractor.latitude,
            contractor.longitude,
            contractor.average_rating,
            contractor.review_count,
            int(contractor.is_active),
            contractor.trade_type.value if contractor.trade_type else None,
        ),
    )
    conn.commit()


def upsert_job(conn: sqlite3.Connection, job: Job) -> None:
    """Insert or replace a job row."""
    conn.execute(
        """
        INSERT OR REPLACE INTO jobs
            (id, desired_start, estimated_duration_hours, latitude, longitude,
             job_type, location, description)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            job.id,
            job.desired_start.isoformat(),
            job.estimated_duration_hours,
            job.latitude,
            job.longitude,
            job.job_type.value,
            job.location,
            job.description,
        ),
    )
    conn.commit()


def upsert_assignment(conn: sqlite3.Connection, assignment: Assignment) -> None:
    """Insert or replace an assignment row (the joined job is not written)."""
    conn.execute(
        """
        INSERT OR REPLACE INTO assignments (id, job_id, contractor_id, status)
        VALUES (?, ?, ?, ?)
        """,
        (
            assignment.id,
            assignment.job_id,
            assignment.contractor_id,
            assignment.status.value,
        ),
    )
    conn.commit()


def add_to_dispatcher_list(
    conn: sqlite3.Connection,
    dispatcher_id: int,
    contractor_id: int,
) -> bool:
    """Add a contractor to a dispatcher's curated list.

    Returns True if added, False if it was already on the list.
    """
    try:
        conn.execute(
            """
            INSERT INTO dispatcher_contractor_lists (dispatcher_id, contractor_id, added_at)
            VALUES (?, ?, ?)
            """,
            (dispatcher_id, contractor_id, datetime.now().isoformat()),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        return False


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def get_contractor(conn: sqlite3.Connection, contractor_id: int) -> Contractor | None:
    row = conn.execute(
        "SELECT * FROM contractors WHERE id = ?", (contractor_id,),
    ).fetchone()
    if row is None:
        return None
    return _contractor_from_row(row)


def get_job(conn: sqlite3.Connection, job_id: int) -> Job | None:
    row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
    if row is None:
        return None
    return _job_from_row(row)


def get_active_contractor_ids(conn: sqlite3.Connection) -> list[int]:
    """Return ids of all active contractors, ascending."""
    rows = conn.execute(
        "SELECT id FROM contractors WHERE is_active = 1 ORDER BY id",
    ).fetchall()
    return [row["id"] for row in rows]


def get_dispatcher_list(conn: sqlite3.Connection, dispatcher_id: int) -> list[int]:
    """Return contractor ids on a dispatcher's curated list, in insertion order."""
    rows = conn.execute(
        """
        SELECT contractor_id FROM dispatcher_contractor_lists
        WHERE dispatcher_id = ?
        ORDER BY added_at, contractor_id
        """,
        (dispatcher_id,),
    ).fetchall()
    return [row["contractor_id"] for row in rows]


def get_active_assignments(
    conn: sqlite3.Connection,
    contractor_id: int,
    day: date,
) -> list[Assignment]:
    """Return Pending/Accepted/InProgress assignments whose job falls on ``day``."""
    statuses = sorted(s.value for s in ACTIVE_ASSIGNMENT_STATUSES)
    placeholders = ", ".join("?" for _ in statuses)
    rows = conn.execute(
        f"""
        SELECT a.id AS assignment_id, a.job_id, a.contractor_id, a.status, j.*
        FROM assignments a
        JOIN jobs j ON j.id = a.job_id
        WHERE a.contractor_id = ?
          AND a.status IN ({placeholders})
          AND substr(j.desired_start, 1, 10) = ?
        ORDER BY j.desired_start, a.id
        """,
        (contractor_id, *statuses, day.isoformat()),
    ).fetchall()
    return [
        Assignment(
            id=row["assignment_id"],
            job_id=row["job_id"],
            contractor_id=row["contractor_id"],
            status=row["status"],
            job=_job_from_row(row),
        )
        for row in rows
    ]


# ---------------------------------------------------------------------------
# Distance cache
# ---------------------------------------------------------------------------


def get_cached_distance(
    conn: sqlite3.Connection,
    cache_key: str,
    ttl_hours: int = 24,
) -> float | None:
    """Return a cached value if it was stored within the TTL window."""
    cutoff = (datetime.now() - timedelta(hours=ttl_hours)).isoformat()
    row = conn.execute(
        "SELECT value FROM distance_cache WHERE cache_key = ? AND cached_at >= ?",
        (cache_key, cutoff),
    ).fetchone()
    if row is None:
        return None
    return float(row["value"])


def set_cached_distance(conn: sqlite3.Connection, cache_key: str, value: float) -> None:
    conn.execute(
        """
        INSERT INTO distance_cache (cache_key, value, cached_at)
        VALUES (?, ?, ?)
        ON CONFLICT(cache_key)
        DO UPDATE SET value = excluded.value, cached_at = excluded.cached_at
        """,
        (cache_key, value, datetime.now().isoformat()),
    )
    conn.commit()


def _contractor_from_row(row: sqlite3.Row) -> Contractor:
    return Contractor(
        id=row["id"],
        name=row["name"],
        working_hours_start=row["working_hours_start"],
        working_hours_end=row["working_hours_end"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        average_rating=row["average_rating"],
        review_count=row["review_count"],
        is_active=bool(row["is_active"]),
        trade_type=row["trade_type"],
    )


def _job_from_row(row: sqlite3.Row) -> Job:
    return Job(
        id=row["id"],
        desired_start=datetime.fromisoformat(row["desired_start"]),
        estimated_duration_hours=row["estimated_duration_hours"],
        latitude=row["latitude"],
        longitude=row["longitude"],
        job_type=row["job_type"],
        location=row["location"],
        description=row["description"],
    )
