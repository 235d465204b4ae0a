# tests/test_jobs.py
# Credit renewal job, the admin trigger and superadmin seeding

from datetime import datetime, timedelta, timezone

import pytest

from app.db import init_db
from app.jobs import renew_credits
from app.models.organization import Organization
from app.models.user import Profile


@pytest.fixture
def job_session(monkeypatch, session_factory):
    monkeypatch.setattr(renew_credits, "SessionLocal", session_factory)
    monkeypatch.setattr(init_db, "SessionLocal", session_factory)
    return session_factory


def test_renew_job_renews_due_organizations(job_session, factory, db_session):
    org = factory.organization(
        credits=3, credits_per_period=15000,
        next_renewal_date=datetime.now(timezone.utc) - timedelta(days=1),
    )

    assert renew_credits.main([]) == 0

    db_session.expire_all()
    assert db_session.get(Organization, org.id).credits_remaining == 15000


def test_renew_job_dry_run_changes_nothing(job_session, factory, db_session):
    org = factory.organization(
        credits=3, credits_per_period=15000,
        next_renewal_date=datetime.now(timezone.utc) - timedelta(days=1),
    )

    assert renew_credits.main(["--dry-run"]) == 0

    db_session.expire_all()
    assert db_session.get(Organization, org.id).credits_remaining == 3


def test_admin_renew_endpoint(client, headers, factory):
    factory.organization(
        name="Vencida", credits=0, credits_per_period=100,
        next_renewal_date=datetime.now(timezone.utc) - timedelta(hours=1),
    )
    superadmin = factory.account("root@aigrader.app", role="superadmin")

    response = client.post("/api/admin/credits/renew", headers=headers(superadmin))

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["due"] == 1
    assert body["renewed"] == 1
    assert body["failed"] == 0


def test_seed_superadmin_is_idempotent(job_session, db_session):
    init_db.init_db()
    init_db.init_db()

    admins = db_session.query(Profile).filter(Profile.role == "superadmin").all()
    assert len(admins) == 1
    assert admins[0].email == init_db.settings.superadmin_email
