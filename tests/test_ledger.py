from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
import threading
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from clubhours_api.core.errors import DuplicateEntryForDate, NotFound, Unauthorized, ValidationError
from clubhours_api.models.work_hours import WorkHourEntry
from clubhours_api.services import ledger

TODAY = date(2026, 6, 15)


def _create(db, claims, work_date, hours="2", description="Platzpflege", today=TODAY):
    return ledger.create(db, claims, work_date=work_date, description=description, hours=hours, today=today)


def test_create_entry_normalizes_input(db_session, make_claims):
    entry = _create(db_session, make_claims("rec1"), date(2026, 5, 1), hours="2.5", description="  Hecke schneiden ")
    db_session.commit()

    assert entry.profile_id == "rec1"
    assert entry.description == "Hecke schneiden"
    assert Decimal(entry.hours) == Decimal("2.50")


def test_duplicate_and_colliding_updates_are_rejected(db_session, make_claims):
    claims = make_claims("rec1")
    first = _create(db_session, claims, date(2026, 5, 1))
    third = _create(db_session, claims, date(2026, 5, 3))
    db_session.commit()

    with pytest.raises(DuplicateEntryForDate):
        _create(db_session, claims, date(2026, 5, 1), hours="4")

    with pytest.raises(DuplicateEntryForDate):
        ledger.update(db_session, claims, first.id, work_date=date(2026, 5, 3), description="x", hours="1", today=TODAY)
    db_session.rollback()

    moved = ledger.update(db_session, claims, first.id, work_date=date(2026, 5, 2), description="Umgezogen", hours="1", today=TODAY)
    db_session.commit()
    assert moved.work_date == date(2026, 5, 2)

    # 保留原日期修改其他字段不算冲突。
    ledger.update(db_session, claims, third.id, work_date=date(2026, 5, 3), description="Neu", hours="3", today=TODAY)
    db_session.commit()

    dates = db_session.execute(select(WorkHourEntry.work_date).order_by(WorkHourEntry.work_date)).scalars().all()
    assert dates == [date(2026, 5, 2), date(2026, 5, 3)]


def test_same_date_for_different_members_is_allowed(db_session, make_claims):
    _create(db_session, make_claims("rec1"), date(2026, 5, 1))
    _create(db_session, make_claims("rec2"), date(2026, 5, 1))
    db_session.commit()
    assert db_session.execute(select(func.count(WorkHourEntry.id))).scalar_one() == 2


def test_unique_constraint_translates_to_duplicate_error(db_session, make_claims, monkeypatch):
    claims = make_claims("rec1")
    _create(db_session, claims, date(2026, 5, 1))
    db_session.commit()

    # 跳过预检查，直接命中数据库唯一约束。
    monkeypatch.setattr(ledger, "_ensure_date_free", lambda *args, **kwargs: None)
    with pytest.raises(DuplicateEntryForDate):
        _create(db_session, claims, date(2026, 5, 1))


@pytest.mark.parametrize(
    ("work_date", "hours", "description", "reason"),
    [
        (date(2026, 6, 16), "2", "Arbeit", "date_in_future"),
        (date(2025, 12, 31), "2", "Arbeit", "year_not_allowed"),
        (date(2026, 5, 1), "0", "Arbeit", "hours_out_of_range"),
        (date(2026, 5, 1), "-1", "Arbeit", "hours_out_of_range"),
        (date(2026, 5, 1), "24.5", "Arbeit", "hours_out_of_range"),
        (date(2026, 5, 1), "1.25", "Arbeit", "hours_step"),
        (date(2026, 5, 1), "abc", "Arbeit", "hours_not_numeric"),
        (date(2026, 5, 1), "2", "   ", "description_empty"),
        (date(2026, 5, 1), "2", "x" * 256, "description_too_long"),
    ],
)
def test_validation_rules(work_date, hours, description, reason):
    with pytest.raises(ValidationError) as exc_info:
        ledger.validate_entry(work_date, description, hours, today=TODAY)
    assert exc_info.value.details["reason"] == reason


def test_boundary_values_are_accepted():
    assert ledger.validate_entry(TODAY, "x" * 255, "24", today=TODAY).hours == Decimal("24.00")
    assert ledger.validate_entry(date(2026, 1, 1), "Arbeit", 0.5, today=TODAY).hours == Decimal("0.50")


def test_previous_year_is_allowed_during_january_grace_period():
    today = date(2027, 1, 20)
    assert ledger.validate_entry(date(2026, 12, 30), "Arbeit", "2", today=today).work_date == date(2026, 12, 30)
    with pytest.raises(ValidationError):
        ledger.validate_entry(date(2025, 12, 30), "Arbeit", "2", today=today)
    with pytest.raises(ValidationError):
        ledger.validate_entry(date(2026, 12, 30), "Arbeit", "2", today=date(2027, 2, 1))


def test_mutations_require_ownership(db_session, make_claims):
    entry = _create(db_session, make_claims("rec1"), date(2026, 5, 1))
    db_session.commit()
    intruder = make_claims("rec2")

    with pytest.raises(Unauthorized):
        ledger.update(db_session, intruder, entry.id, work_date=date(2026, 5, 2), description="x", hours="1", today=TODAY)
    with pytest.raises(Unauthorized):
        ledger.delete(db_session, intruder, entry.id, today=TODAY)
    with pytest.raises(Unauthorized):
        ledger.get(db_session, intruder, entry.id)

    assert ledger.get(db_session, intruder, entry.id, family_member_ids=frozenset({"rec1", "rec2"})).id == entry.id


def test_unknown_entry_raises_not_found(db_session, make_claims):
    claims = make_claims("rec1")
    with pytest.raises(NotFound):
        ledger.get(db_session, claims, uuid4())
    with pytest.raises(NotFound):
        ledger.delete(db_session, claims, uuid4())


def test_delete_removes_entry(db_session, make_claims):
    claims = make_claims("rec1")
    entry = _create(db_session, claims, date(2026, 5, 1))
    db_session.commit()

    ledger.delete(db_session, claims, entry.id, today=TODAY)
    db_session.commit()
    assert ledger.list_by_profile(db_session, "rec1", 2026) == []


def test_entries_of_closed_year_are_frozen(db_session, make_claims):
    claims = make_claims("rec1")
    entry = _create(db_session, claims, date(2025, 12, 20), today=date(2026, 1, 10))
    db_session.commit()

    # 一月份仍可修改上一年度记录。
    ledger.update(
        db_session, claims, entry.id, work_date=date(2025, 12, 21), description="Nachtrag", hours="3", today=date(2026, 1, 31)
    )
    db_session.commit()

    after_grace = date(2026, 2, 1)
    with pytest.raises(ValidationError) as exc_info:
        ledger.delete(db_session, claims, entry.id, today=after_grace)
    assert exc_info.value.details["reason"] == "year_not_allowed"
    with pytest.raises(ValidationError):
        ledger.update(
            db_session, claims, entry.id, work_date=date(2026, 1, 15), description="Verschoben", hours="1", today=after_grace
        )

    assert [item.id for item in ledger.list_by_profile(db_session, "rec1", 2025)] == [entry.id]


def test_list_by_profile_filters_year_and_orders_by_date(db_session, make_claims):
    claims = make_claims("rec1")
    _create(db_session, claims, date(2026, 3, 2))
    _create(db_session, claims, date(2026, 1, 5))
    _create(db_session, claims, date(2025, 12, 31), today=date(2026, 1, 10))
    _create(db_session, make_claims("rec2"), date(2026, 2, 1))
    db_session.commit()

    entries = ledger.list_by_profile(db_session, "rec1", 2026)
    assert [entry.work_date for entry in entries] == [date(2026, 1, 5), date(2026, 3, 2)]
    assert [entry.work_date for entry in ledger.list_by_profile(db_session, "rec1", 2025)] == [date(2025, 12, 31)]


def test_concurrent_creates_for_same_date_leave_one_entry(file_session_factory, make_claims):
    claims = make_claims("rec1")
    barrier = threading.Barrier(4)

    def attempt(index: int) -> str:
        barrier.wait()
        with file_session_factory() as db:
            try:
                _create(db, claims, date(2026, 5, 1), hours=str(index + 1))
                db.commit()
                return "created"
            except DuplicateEntryForDate:
                db.rollback()
                return "duplicate"

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = sorted(pool.map(attempt, range(4)))

    assert outcomes == ["created", "duplicate", "duplicate", "duplicate"]
    with file_session_factory() as db:
        assert db.execute(select(func.count(WorkHourEntry.id))).scalar_one() == 1
