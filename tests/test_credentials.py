from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from clubhours_api.core.errors import InvalidCredential, InvalidResetToken, WeakSecret
from clubhours_api.models.credential import Credential
from clubhours_api.models.tokens import ResetToken
from clubhours_api.services import credentials, reset_tokens


def test_password_hash_and_verify():
    password_hash = credentials.hash_password("StrongPassw0rd!")
    assert password_hash.startswith("pbkdf2_sha256$1000$")
    assert credentials.verify_password("StrongPassw0rd!", password_hash)
    assert not credentials.verify_password("wrong-password", password_hash)


def test_verify_password_rejects_malformed_hash():
    assert not credentials.verify_password("secret", "not-a-hash")
    assert not credentials.verify_password("secret", "md5$1$abc$def")
    assert not credentials.verify_password("secret", "pbkdf2_sha256$x$abc$def")


def test_set_password_creates_credential_and_verify_succeeds(db_session):
    credentials.set_password(db_session, "  Familie@Example.com ", "geheim123")
    db_session.commit()

    stored = db_session.execute(select(Credential)).scalar_one()
    assert stored.email == "familie@example.com"
    assert "geheim123" not in stored.password_hash

    verified = credentials.verify(db_session, "FAMILIE@example.com", "geheim123")
    assert verified.email == "familie@example.com"


def test_unknown_email_and_wrong_password_fail_identically(db_session):
    credentials.set_password(db_session, "anna@example.com", "geheim123")
    db_session.commit()

    with pytest.raises(InvalidCredential) as unknown:
        credentials.verify(db_session, "nobody@example.com", "geheim123")
    with pytest.raises(InvalidCredential) as wrong:
        credentials.verify(db_session, "anna@example.com", "falsch123")

    assert unknown.value.code == wrong.value.code
    assert unknown.value.message == wrong.value.message
    assert unknown.value.details == wrong.value.details


def test_set_password_updates_existing_credential(db_session):
    credentials.set_password(db_session, "anna@example.com", "geheim123")
    db_session.commit()
    credentials.set_password(db_session, "anna@example.com", "neuesPasswort")
    db_session.commit()

    assert len(db_session.execute(select(Credential)).scalars().all()) == 1
    with pytest.raises(InvalidCredential):
        credentials.verify(db_session, "anna@example.com", "geheim123")
    assert credentials.verify(db_session, "anna@example.com", "neuesPasswort").email == "anna@example.com"


@pytest.mark.parametrize("secret", ["", "   ", "kurz"])
def test_set_password_rejects_weak_secret(db_session, secret):
    with pytest.raises(WeakSecret):
        credentials.set_password(db_session, "anna@example.com", secret)
    assert db_session.execute(select(Credential)).first() is None


def test_set_password_invalidates_outstanding_reset_tokens(db_session):
    first = reset_tokens.issue(db_session, "anna@example.com", "rec1")
    db_session.commit()

    credentials.set_password(db_session, "anna@example.com", "geheim123")
    db_session.commit()

    remaining = db_session.execute(select(ResetToken).where(ResetToken.consumed_at.is_(None))).scalars().all()
    assert remaining == []
    with pytest.raises(InvalidResetToken):
        reset_tokens.redeem(db_session, first, "rec1", now=datetime.now(timezone.utc) + timedelta(seconds=1))
