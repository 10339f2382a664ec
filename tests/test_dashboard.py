from datetime import date
from decimal import Decimal
import json

import pytest

from clubhours_api.core.errors import DirectoryUnavailable
from clubhours_api.services import dashboard, ledger
from clubhours_api.utils.collation import display_name_key

TODAY = date(2026, 6, 15)


def _log(db, claims, work_date, hours):
    ledger.create(db, claims, work_date=work_date, description="Arbeitseinsatz", hours=hours, today=TODAY)


def test_personal_summary_reaches_full_requirement(db_session, fake_directory, make_claims):
    fake_directory.add("rec1", "Anna", "Muster", "anna@example.com")
    claims = make_claims("rec1")
    _log(db_session, claims, date(2026, 5, 2), "5")
    _log(db_session, claims, date(2026, 5, 1), "3")
    db_session.commit()

    summary = dashboard.build_dashboard(db_session, fake_directory, "rec1", 2026)
    payload = dashboard.to_dict(summary, 2026)

    assert payload["kind"] == "personal"
    personal = payload["personal"]
    assert personal["completed"] == 8.0
    assert personal["required"] == 8.0
    assert personal["percentage"] == 100.0
    assert personal["is_complete"] is True
    assert [entry["date"] for entry in personal["entries"]] == ["2026-05-01", "2026-05-02"]


def test_family_summary_sums_members(db_session, fake_directory, make_claims):
    fake_directory.add("p2", "Paul", "Muster", "familie@example.com", family="F1")
    fake_directory.add("p1", "Anna", "Muster", "familie@example.com", family="F1")
    _log(db_session, make_claims("p1"), date(2026, 4, 1), "4")
    db_session.commit()

    summary = dashboard.build_dashboard(db_session, fake_directory, "p2", 2026)
    payload = dashboard.to_dict(summary, 2026)

    assert payload["kind"] == "family"
    family = payload["family"]
    assert family["family_unit_id"] == "F1"
    assert family["completed"] == 4.0
    assert family["required"] == 16.0
    assert family["remaining"] == 12.0
    assert family["percentage"] == 25.0
    assert family["is_complete"] is False
    assert [member["profile_id"] for member in family["members"]] == ["p1", "p2"]
    assert [member["percentage"] for member in family["members"]] == [50.0, 0.0]


def test_percentage_is_clamped_to_hundred(db_session, fake_directory, make_claims):
    fake_directory.add("rec1", "Anna", "Muster", "anna@example.com")
    claims = make_claims("rec1")
    for day, hours in [(1, "8"), (2, "8"), (3, "4")]:
        _log(db_session, claims, date(2026, 5, day), hours)
    db_session.commit()

    personal = dashboard.to_dict(dashboard.build_dashboard(db_session, fake_directory, "rec1", 2026), 2026)["personal"]
    assert personal["completed"] == 20.0
    assert personal["percentage"] == 100.0


def test_member_without_requirement_counts_as_complete(db_session, fake_directory):
    fake_directory.add("kid", "Kim", "Muster", "kim@example.com", birth_date=date(2015, 4, 1))

    personal = dashboard.to_dict(dashboard.build_dashboard(db_session, fake_directory, "kid", 2026), 2026)["personal"]
    assert personal["required"] == 0.0
    assert personal["percentage"] == 100.0
    assert personal["is_complete"] is True


def test_is_complete_uses_unrounded_values():
    assert dashboard.percentage(Decimal("7.999"), Decimal("8")) == Decimal("99.99")
    member = dashboard.MemberContribution(
        profile_id="rec1",
        name="Anna Muster",
        completed=Decimal("7.999"),
        required=Decimal("8"),
        entries=(),
    )
    assert member.is_complete is False


def test_other_years_are_not_counted(db_session, fake_directory, make_claims):
    fake_directory.add("rec1", "Anna", "Muster", "anna@example.com")
    ledger.create(
        db_session,
        make_claims("rec1"),
        work_date=date(2025, 12, 30),
        description="Vorjahr",
        hours="6",
        today=date(2026, 1, 5),
    )
    db_session.commit()

    personal = dashboard.to_dict(dashboard.build_dashboard(db_session, fake_directory, "rec1", 2026), 2026)["personal"]
    assert personal["completed"] == 0.0
    assert personal["entries"] == []


def test_aggregation_is_idempotent(db_session, fake_directory, make_claims):
    fake_directory.add("p1", "Zoe", "Muster", "familie@example.com", family="F1")
    fake_directory.add("p2", "Ärne", "Muster", "familie@example.com", family="F1")
    _log(db_session, make_claims("p1"), date(2026, 3, 1), "1.5")
    _log(db_session, make_claims("p2"), date(2026, 3, 1), "2")
    db_session.commit()

    first = json.dumps(dashboard.to_dict(dashboard.build_dashboard(db_session, fake_directory, "p1", 2026), 2026))
    second = json.dumps(dashboard.to_dict(dashboard.build_dashboard(db_session, fake_directory, "p1", 2026), 2026))
    assert first == second
    assert json.loads(first)["family"]["members"][0]["name"] == "Ärne Muster"


def test_directory_outage_yields_no_partial_summary(db_session, fake_directory):
    fake_directory.add("rec1", "Anna", "Muster", "anna@example.com")
    fake_directory.unavailable = True

    with pytest.raises(DirectoryUnavailable):
        dashboard.build_dashboard(db_session, fake_directory, "rec1", 2026)


def test_display_name_key_folds_accents_and_case():
    names = ["zoe Muster", "Ärne Muster", "Bernd Muster", "anna Muster"]
    assert sorted(names, key=display_name_key) == ["anna Muster", "Ärne Muster", "Bernd Muster", "zoe Muster"]
