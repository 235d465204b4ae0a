# tests/test_users.py
# Superadmin user management and org-admin credit limits

import uuid

import pytest
from sqlalchemy import select

from app.models.user import Profile, User


@pytest.fixture
def superadmin(factory):
    return factory.account("root@aigrader.app", role="superadmin", name="Root")


def test_create_user_and_list(client, headers, factory, superadmin):
    org = factory.organization(name="Colegio Norte")

    created = client.post(
        "/api/admin/users",
        json={
            "email": "Nueva@Norte.cl",
            "password": "Secret123!",
            "full_name": "Nueva Profe",
            "organization_id": str(org.id),
            "monthly_credit_limit": 80,
        },
        headers=headers(superadmin),
    )
    assert created.status_code == 201, created.text
    assert created.json()["email"] == "nueva@norte.cl"
    assert created.json()["organization_name"] == "Colegio Norte"

    listing = client.get("/api/admin/users", headers=headers(superadmin)).json()
    by_email = {u["email"]: u for u in listing}
    assert by_email["nueva@norte.cl"]["monthly_credit_limit"] == 80
    assert by_email["root@aigrader.app"]["organization_name"] == "Sin Asignar"


def test_duplicate_email_conflicts(client, headers, factory, superadmin):
    factory.account("profe@colegio.cl")
    response = client.post(
        "/api/admin/users",
        json={"email": "PROFE@colegio.cl", "password": "Secret123!", "full_name": "Copia"},
        headers=headers(superadmin),
    )
    assert response.status_code == 409


def test_invalid_role_rejected(client, headers, superadmin):
    response = client.post(
        "/api/admin/users",
        json={"email": "x@colegio.cl", "password": "Secret123!", "full_name": "X", "role": "student"},
        headers=headers(superadmin),
    )
    assert response.status_code == 400


def test_bulk_users_resolves_organization_by_name(client, headers, factory, db_session, superadmin):
    factory.organization(name="Colegio Norte")
    csv_data = (
        "full_name,email,password,role,organization_name\n"
        "Pedro Gil,pedro@norte.cl,Secret123!,teacher,Colegio Norte\n"
        "Eva Luna,eva@norte.cl,Secret123!,admin,Colegio Fantasma\n"
        "Root Copy,root@aigrader.app,Secret123!,teacher,\n"
        "Mal Rol,malrol@norte.cl,Secret123!,janitor,\n"
    )

    response = client.post("/api/admin/users/bulk", json={"csv_data": csv_data}, headers=headers(superadmin))

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["created_count"] == 1
    assert body["failed_count"] == 3
    assert {e["line"] for e in body["errors"]} == {3, 4, 5}

    pedro = db_session.scalars(select(User).where(User.email == "pedro@norte.cl")).one()
    assert db_session.get(Profile, pedro.id).organization_id is not None


def test_update_user_and_self_protection(client, headers, factory, db_session, superadmin):
    teacher = factory.account("profe@colegio.cl")

    response = client.patch(
        f"/api/admin/users/{teacher.id}",
        json={"role": "admin", "is_active": False},
        headers=headers(superadmin),
    )
    assert response.status_code == 200
    assert response.json()["role"] == "admin"
    assert response.json()["is_active"] is False

    own = client.patch(
        f"/api/admin/users/{superadmin.id}", json={"is_active": False}, headers=headers(superadmin)
    )
    assert own.status_code == 400


def test_delete_user_removes_identity_and_profile(client, headers, factory, db_session, superadmin):
    teacher = factory.account("profe@colegio.cl")

    response = client.delete(f"/api/admin/users/{teacher.id}", headers=headers(superadmin))

    assert response.status_code == 200
    db_session.expire_all()
    assert db_session.get(User, teacher.id) is None
    assert db_session.get(Profile, teacher.id) is None
    login = client.post("/api/auth/login", json={"email": "profe@colegio.cl", "password": "Secret123!"})
    assert login.status_code == 401


def test_cannot_delete_self_or_missing(client, headers, superadmin):
    assert client.delete(f"/api/admin/users/{superadmin.id}", headers=headers(superadmin)).status_code == 400
    assert client.delete(f"/api/admin/users/{uuid.uuid4()}", headers=headers(superadmin)).status_code == 404


# ── Org admin credit limits ───────────────────────────────────────────────────

def test_org_admin_sets_credit_limit_within_own_org(client, headers, factory, db_session):
    org = factory.organization()
    other_org = factory.organization(name="Otro")
    admin = factory.account("admin@colegio.cl", role="admin", organization=org)
    teacher = factory.account("profe@colegio.cl", organization=org)
    stranger = factory.account("ajeno@otro.cl", organization=other_org)

    response = client.put(
        f"/api/organization/users/{teacher.id}/credit-limit",
        json={"monthly_credit_limit": 250},
        headers=headers(admin),
    )
    assert response.status_code == 200, response.text
    assert response.json()["monthly_credit_limit"] == 250

    blocked = client.put(
        f"/api/organization/users/{stranger.id}/credit-limit",
        json={"monthly_credit_limit": 250},
        headers=headers(admin),
    )
    assert blocked.status_code == 404

    negative = client.put(
        f"/api/organization/users/{teacher.id}/credit-limit",
        json={"monthly_credit_limit": -1},
        headers=headers(admin),
    )
    assert negative.status_code == 400


def test_teacher_cannot_set_credit_limits(client, headers, factory):
    org = factory.organization()
    teacher = factory.account("profe@colegio.cl", organization=org)
    response = client.put(
        f"/api/organization/users/{teacher.id}/credit-limit",
        json={"monthly_credit_limit": 9999},
        headers=headers(teacher),
    )
    assert response.status_code == 403
