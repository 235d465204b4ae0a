# tests/test_organizations.py
# Superadmin organization management, plans, bulk import and audit trail

import pytest
from sqlalchemy import select

from app.models.organization import Organization
from app.models.user import Profile, User


@pytest.fixture
def superadmin(factory):
    return factory.account("root@aigrader.app", role="superadmin", name="Root")


def test_only_superadmin_can_manage_organizations(client, factory, headers):
    teacher = factory.account("profe@colegio.cl")
    assert client.get("/api/admin/organizations", headers=headers(teacher)).status_code == 403


def test_create_and_duplicate_subdomain(client, headers, superadmin):
    payload = {"name": "Colegio Norte", "subdomain": "norte", "education_level": "Secundaria"}

    created = client.post("/api/admin/organizations", json=payload, headers=headers(superadmin))
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["name"] == "Colegio Norte"
    assert body["credits_remaining"] == 0
    assert body["billing_cycle"] == "monthly"

    duplicate = client.post("/api/admin/organizations", json=payload, headers=headers(superadmin))
    assert duplicate.status_code == 409


def test_assign_plan(client, headers, factory, superadmin):
    org = factory.organization(credits=0)

    response = client.post(
        f"/api/admin/organizations/{org.id}/plan", json={"plan": "Enterprise"}, headers=headers(superadmin)
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["subscription_plan"] == "Enterprise"
    assert body["credits_remaining"] == 99999
    assert body["next_renewal_date"] is not None


def test_unknown_plan_rejected(client, headers, factory, superadmin):
    org = factory.organization()
    response = client.post(
        f"/api/admin/organizations/{org.id}/plan", json={"plan": "Gold"}, headers=headers(superadmin)
    )
    assert response.status_code == 400


def test_update_and_details(client, headers, factory, superadmin):
    org = factory.organization(name="Antiguo")
    factory.account("profe@colegio.cl", organization=org)

    patched = client.patch(
        f"/api/admin/organizations/{org.id}",
        json={"name": "Nuevo", "billing_cycle": "annual"},
        headers=headers(superadmin),
    )
    assert patched.status_code == 200
    assert patched.json()["name"] == "Nuevo"
    assert patched.json()["billing_cycle"] == "annual"

    details = client.get(f"/api/admin/organizations/{org.id}", headers=headers(superadmin)).json()
    assert details["organization"]["name"] == "Nuevo"
    assert [u["email"] for u in details["users"]] == ["profe@colegio.cl"]


def test_bulk_import_creates_org_and_director(client, headers, db_session, superadmin):
    csv_data = (
        "name,subdomain,director_name,director_email\n"
        "Colegio Norte,norte,Rosa Díaz,Rosa@Norte.cl\n"
        "Colegio Sur,norte,Juan Paz,juan@sur.cl\n"
        "Sin Director,,,\n"
    )

    response = client.post(
        "/api/admin/organizations/bulk", json={"csv_data": csv_data}, headers=headers(superadmin)
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["created"] == 1
    assert body["errors"] == 2
    assert {f["line"] for f in body["failures"]} == {3, 4}
    director = body["directors"][0]
    assert director["email"] == "rosa@norte.cl"
    assert len(director["temporary_password"]) == 14

    org = db_session.scalars(select(Organization).where(Organization.name == "Colegio Norte")).one()
    assert org.subscription_plan == "Basic"
    assert org.credits_remaining == 15000
    assert db_session.scalars(select(Organization).where(Organization.name == "Colegio Sur")).first() is None

    login = client.post(
        "/api/auth/login", json={"email": "rosa@norte.cl", "password": director["temporary_password"]}
    )
    assert login.status_code == 200
    assert login.json()["role"] == "director"


def test_delete_keeps_members_unassigned(client, headers, factory, db_session, superadmin):
    org = factory.organization()
    teacher = factory.account("profe@colegio.cl", organization=org)

    response = client.delete(f"/api/admin/organizations/{org.id}", headers=headers(superadmin))

    assert response.status_code == 200
    db_session.expire_all()
    assert db_session.get(Organization, org.id) is None
    assert db_session.get(Profile, teacher.id).organization_id is None
    assert db_session.get(User, teacher.id) is not None


def test_mutations_are_audited(client, headers, superadmin):
    client.post("/api/admin/organizations", json={"name": "Auditada"}, headers=headers(superadmin))

    response = client.get(
        "/api/admin/audit-logs", params={"action": "organization.create"}, headers=headers(superadmin)
    )

    assert response.status_code == 200
    logs = response.json()["logs"]
    assert len(logs) == 1
    assert logs[0]["user_email"] == "root@aigrader.app"
    assert logs[0]["details"] == {"name": "Auditada"}
    assert logs[0]["ip_address"]


def test_audit_ip_uses_first_forwarded_hop(client, headers, superadmin):
    client.post(
        "/api/admin/organizations",
        json={"name": "Proxy"},
        headers={**headers(superadmin), "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )
    logs = client.get("/api/admin/audit-logs", headers=headers(superadmin)).json()["logs"]
    assert logs[0]["ip_address"] == "203.0.113.7"


@pytest.mark.parametrize(
    "payload",
    [
        {"credits_remaining": None},
        {"credits_per_period": None},
        {"name": None},
        {"name": "   "},
        {"billing_cycle": None},
        {"subscription_plan": "Gold"},
    ],
)
def test_update_rejects_invalid_values(client, headers, factory, db_session, superadmin, payload):
    org = factory.organization(name="Colegio Norte", credits=40)

    response = client.patch(f"/api/admin/organizations/{org.id}", json=payload, headers=headers(superadmin))

    assert response.status_code == 400
    assert "details" in response.json()
    db_session.expire_all()
    stored = db_session.get(Organization, org.id)
    assert stored.name == "Colegio Norte"
    assert stored.credits_remaining == 40


def test_update_blank_subdomain_is_cleared(client, headers, factory, db_session, superadmin):
    first = factory.organization(name="Colegio Norte", subdomain="norte")
    second = factory.organization(name="Colegio Sur", subdomain="sur")

    for org in (first, second):
        response = client.patch(
            f"/api/admin/organizations/{org.id}", json={"subdomain": "  "}, headers=headers(superadmin)
        )
        assert response.status_code == 200, response.text
        assert response.json()["subdomain"] is None


def test_update_with_unknown_parent_returns_404(client, headers, factory, superadmin):
    org = factory.organization()

    response = client.patch(
        f"/api/admin/organizations/{org.id}",
        json={"parent_id": "00000000-0000-0000-0000-000000000001"},
        headers=headers(superadmin),
    )

    assert response.status_code == 404


def test_update_plan_name_is_accepted(client, headers, factory, superadmin):
    org = factory.organization()

    response = client.patch(
        f"/api/admin/organizations/{org.id}", json={"subscription_plan": "Pro"}, headers=headers(superadmin)
    )

    assert response.status_code == 200
    assert response.json()["subscription_plan"] == "Pro"
