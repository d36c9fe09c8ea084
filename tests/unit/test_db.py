"""Tests for the SQLite persistence layer."""

import sqlite3
from datetime import date, datetime, time, timedelta
from pathlib import Path

import pytest

from dispatch.core.db import (
    add_to_dispatcher_list,
    get_active_assignments,
    get_active_contractor_ids,
    get_cached_distance,
    get_contractor,
    get_dispatcher_list,
    get_job,
    init_db,
    set_cached_distance,
    upsert_assignment,
    upsert_contractor,
    upsert_job,
)
from dispatch.core.schemas import (
    Assignment,
    AssignmentStatus,
    Contractor,
    Job,
    TradeType,
)


@pytest.fixture
def conn(tmp_path: Path) -> sqlite3.Connection:
    c = init_db(tmp_path / "test.db")
    yield c  # type: ignore[misc]
    c.close()


def _contractor(contractor_id: int = 1, active: bool = True) -> Contractor:
    return Contractor(
        id=contractor_id,
        name=f"Contractor {contractor_id}",
        working_hours_start=time(9, 0),
        working_hours_end=time(17, 0),
        latitude=40.7,
        longitude=-74.0,
        average_rating=4.5,
        review_count=12,
        is_active=active,
        trade_type=TradeType.PLUMBING,
    )


def _job(job_id: int = 10, start: datetime = datetime(2030, 5, 6, 10, 0)) -> Job:
    return Job(
        id=job_id,
        desired_start=start,
        estimated_duration_hours=1.5,
        latitude=40.75,
        longitude=-73.99,
        job_type=TradeType.PLUMBING,
        location="Main St",
    )


class TestInitDb:
    def test_creates_tables(self, conn: sqlite3.Connection) -> None:
        tables = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert {
            "contractors", "jobs", "assignments",
            "dispatcher_contractor_lists", "distance_cache",
        } <= tables

    def test_creates_parent_dir(self, tmp_path: Path) -> None:
        c = init_db(tmp_path / "nested" / "dir" / "x.db")
        c.close()
        assert (tmp_path / "nested" / "dir" / "x.db").exists()

    def test_idempotent(self, tmp_path: Path) -> None:
        init_db(tmp_path / "x.db").close()
        init_db(tmp_path / "x.db").close()


class TestContractors:
    def test_round_trip(self, conn: sqlite3.Connection) -> None:
        upsert_contractor(conn, _contractor())
        assert get_contractor(conn, 1) == _contractor()

    def test_missing(self, conn: sqlite3.Connection) -> None:
        assert get_contractor(conn, 99) is None

    def test_upsert_replaces(self, conn: sqlite3.Connection) -> None:
        upsert_contractor(conn, _contractor())
        upsert_contractor(conn, _contractor(active=False))
        got = get_contractor(conn, 1)
        assert got is not None
        assert got.is_active is False

    def test_null_rating_preserved(self, conn: sqlite3.Connection) -> None:
        c = _contractor().model_copy(update={"average_rating": None, "trade_type": None})
        upsert_contractor(conn, c)
        got = get_contractor(conn, 1)
        assert got is not None
        assert got.average_rating is None
        assert got.trade_type is None

    def test_active_ids_sorted(self, conn: sqlite3.Connection) -> None:
        for cid, active in [(3, True), (1, True), (2, False)]:
            upsert_contractor(conn, _contractor(cid, active))
        assert get_active_contractor_ids(conn) == [1, 3]


class TestJobs:
    def test_round_trip(self, conn: sqlite3.Connection) -> None:
        upsert_job(conn, _job())
        assert get_job(conn, 10) == _job()

    def test_missing(self, conn: sqlite3.Connection) -> None:
        assert get_job(conn, 99) is None


class TestDispatcherLists:
    def test_add_and_read(self, conn: sqlite3.Connection) -> None:
        assert add_to_dispatcher_list(conn, 7, 2) is True
        assert add_to_dispatcher_list(conn, 7, 1) is True
        assert set(get_dispatcher_list(conn, 7)) == {1, 2}

    def test_duplicate_not_added(self, conn: sqlite3.Connection) -> None:
        assert add_to_dispatcher_list(conn, 7, 1) is True
        assert add_to_dispatcher_list(conn, 7, 1) is False
        assert get_dispatcher_list(conn, 7) == [1]

    def test_lists_are_per_dispatcher(self, conn: sqlite3.Connection) -> None:
        add_to_dispatcher_list(conn, 7, 1)
        add_to_dispatcher_list(conn, 8, 2)
        assert get_dispatcher_list(conn, 7) == [1]
        assert get_dispatcher_list(conn, 9) == []


class TestActiveAssignments:
    def _seed(self, conn: sqlite3.Connection) -> None:
        upsert_contractor(conn, _contractor(1))
        upsert_contractor(conn, _contractor(2))
        upsert_job(conn, _job(10, datetime(2030, 5, 6, 10, 0)))
        upsert_job(conn, _job(11, datetime(2030, 5, 6, 14, 0)))
        upsert_job(conn, _job(12, datetime(2030, 5, 7, 10, 0)))

    def test_filters_by_status_day_and_contractor(self, conn: sqlite3.Connection) -> None:
        self._seed(conn)
        upsert_assignment(conn, Assignment(id=1, job_id=10, contractor_id=1,
                                           status=AssignmentStatus.ACCEPTED))
        upsert_assignment(conn, Assignment(id=2, job_id=11, contractor_id=1,
                                           status=AssignmentStatus.DECLINED))
        upsert_assignment(conn, Assignment(id=3, job_id=12, contractor_id=1,
                                           status=AssignmentStatus.PENDING))
        upsert_assignment(conn, Assignment(id=4, job_id=11, contractor_id=2,
                                           status=AssignmentStatus.IN_PROGRESS))

        got = get_active_assignments(conn, 1, date(2030, 5, 6))
        assert [a.id for a in got] == [1]
        assert got[0].job == _job(10, datetime(2030, 5, 6, 10, 0))
        assert got[0].status == AssignmentStatus.ACCEPTED

    def test_ordered_by_start(self, conn: sqlite3.Connection) -> None:
        self._seed(conn)
        upsert_assignment(conn, Assignment(id=5, job_id=11, contractor_id=1))
        upsert_assignment(conn, Assignment(id=6, job_id=10, contractor_id=1))
        got = get_active_assignments(conn, 1, date(2030, 5, 6))
        assert [a.job_id for a in got] == [10, 11]

    def test_none_for_free_day(self, conn: sqlite3.Connection) -> None:
        self._seed(conn)
        assert get_active_assignments(conn, 1, date(2030, 5, 8)) == []


class TestDistanceCache:
    def test_miss(self, conn: sqlite3.Connection) -> None:
        assert get_cached_distance(conn, "distance:x") is None

    def test_round_trip(self, conn: sqlite3.Connection) -> None:
        set_cached_distance(conn, "distance:x", 3.5)
        assert get_cached_distance(conn, "distance:x") == 3.5

    def test_overwrite(self, conn: sqlite3.Connection) -> None:
        set_cached_distance(conn, "distance:x", 3.5)
        set_cached_distance(conn, "distance:x", 4.0)
        assert get_cached_distance(conn, "distance:x") == 4.0

    def test_expired_entry_is_a_miss(self, conn: sqlite3.Connection) -> None:
        stale = (datetime.now() - timedelta(hours=25)).isoformat()
        conn.execute(
            "INSERT INTO distance_cache (cache_key, value, cached_at) VALUES (?, ?, ?)",
            ("distance:old", 9.0, stale),
        )
        conn.commit()
        assert get_cached_distance(conn, "distance:old", ttl_hours=24) is None
        assert get_cached_distance(conn, "distance:old", ttl_hours=48) == 9.0
