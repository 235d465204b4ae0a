# tests/test_dashboards.py
# Dashboard endpoints: class, student, organization, institution, platform

from datetime import datetime, timezone

import pytest

from app.models.exam import Grade


def _feedback(*questions):
    return {"informe_evaluacion": {"evaluacion_detallada": list(questions)}}


@pytest.fixture
def graded_class(factory, db_session):
    org = factory.organization(name="Colegio Norte", education_level="Secundaria")
    teacher = factory.account("profe@colegio.cl", organization=org)
    cls = factory.classroom(teacher)
    ana = factory.student(cls)
    luis = factory.student(cls, name="Luis Rojas", email="luis@alumnos.cl", tutor_email=None)
    exam = factory.exam(cls)
    now = datetime.now(timezone.utc)
    db_session.add_all([
        Grade(
            student_id=ana.id, exam_id=exam.id, organization_id=org.id,
            score_obtained=9, score_possible=10, created_at=now,
            ai_feedback=_feedback({"pregunta_id": "P1", "tema": "Fracciones", "evaluacion": "CORRECTO",
                                   "tipo_de_error": "ninguno"}),
        ),
        Grade(
            student_id=luis.id, exam_id=exam.id, organization_id=org.id,
            score_obtained=5, score_possible=10, created_at=now,
            ai_feedback=_feedback({"pregunta_id": "P1", "tema": "Fracciones", "evaluacion": "INCORRECTO",
                                   "tipo_de_error": "conceptual", "area_de_mejora": "Repasar fracciones"}),
        ),
    ])
    db_session.commit()
    return {"org": org, "teacher": teacher, "class": cls, "ana": ana, "luis": luis}


def test_class_analytics_for_owner(client, headers, graded_class):
    response = client.post(
        "/api/get-class-analytics",
        json={"class_id": str(graded_class["class"].id)},
        headers=headers(graded_class["teacher"]),
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["class_info"]["total_students"] == 2
    assert body["class_info"]["total_grades"] == 2
    assert body["general_stats"] == {"class_average": 70, "highest_score": 90, "lowest_score": 50, "passing_rate": 50}
    assert body["top_failed_questions"][0]["question_id"] == "P1"
    assert body["error_types_frequency"] == [{"name": "Conceptual", "value": 1, "percentage": 100}]


def test_class_analytics_access(client, headers, factory, graded_class):
    stranger = factory.account("ajeno@otro.cl")
    superadmin = factory.account("root@aigrader.app", role="superadmin")
    payload = {"class_id": str(graded_class["class"].id)}

    assert client.post("/api/get-class-analytics", json=payload, headers=headers(stranger)).status_code == 403
    assert client.post("/api/get-class-analytics", json=payload, headers=headers(superadmin)).status_code == 200
    missing = {"class_id": "00000000-0000-0000-0000-000000000000"}
    assert client.post("/api/get-class-analytics", json=missing, headers=headers(stranger)).status_code == 404


def test_student_dashboard(client, headers, graded_class):
    response = client.post(
        "/api/get-student-dashboard",
        json={"student_id": str(graded_class["luis"].id)},
        headers=headers(graded_class["teacher"]),
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["student"]["full_name"] == "Luis Rojas"
    assert body["class_name"] == "Matemáticas 3A"
    assert body["grades"][0]["percentage"] == 50
    assert body["stats"]["total_evaluations"] == 1
    assert body["stats"]["total_points"] == {"obtained": 5.0, "possible": 10.0}
    assert len(body["stats"]["monthly_averages"]) == 12
    assert body["pedagogical_insights"]["to_review"] == ["Fracciones"]
    assert body["pedagogical_insights"]["recommendation"] == "Repasar fracciones"


def test_student_dashboard_forbidden_for_other_org(client, headers, factory, graded_class):
    other_org = factory.organization(name="Otro")
    director = factory.account("director@otro.cl", role="director", organization=other_org)
    response = client.post(
        "/api/get-student-dashboard",
        json={"student_id": str(graded_class["ana"].id)},
        headers=headers(director),
    )
    assert response.status_code == 403


def test_organization_dashboard(client, headers, factory, graded_class):
    director = factory.account("director@colegio.cl", role="director", organization=graded_class["org"])

    response = client.get("/api/get-organization-dashboard", headers=headers(director))

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["organization"]["name"] == "Colegio Norte"
    assert {u["email"] for u in body["users"]} == {"profe@colegio.cl", "director@colegio.cl"}
    assert [c["name"] for c in body["classes"]] == ["Matemáticas 3A"]

    teacher_view = client.get("/api/get-organization-dashboard", headers=headers(graded_class["teacher"]))
    assert teacher_view.status_code == 403


def test_institutional_dashboard(client, headers, factory, graded_class, db_session):
    institution = factory.organization(name="Red Educativa")
    graded_class["org"].parent_id = institution.id
    db_session.commit()
    factory.organization(name="Colegio Vacío", parent=institution)
    manager = factory.account("gestor@red.cl", role="institutional_manager", organization=institution)

    response = client.get("/api/institutional/dashboard", headers=headers(manager))

    assert response.status_code == 200, response.text
    body = response.json()
    schools = {s["name"]: s for s in body["schools"]}
    assert schools["Colegio Norte"]["average"] == 70
    assert schools["Colegio Norte"]["status"] == "En Riesgo"
    assert schools["Colegio Norte"]["level"] == "Secundaria"
    assert schools["Colegio Norte"]["user_count"] == 1
    assert schools["Colegio Vacío"]["status"] == "Crítico"
    assert body["stats"] == {"total_schools": 2, "total_users": 1, "global_average": 35}


def test_institutional_dashboard_requires_role(client, headers, graded_class):
    response = client.get("/api/institutional/dashboard", headers=headers(graded_class["teacher"]))
    assert response.status_code == 403


def test_admin_stats(client, headers, factory, graded_class):
    superadmin = factory.account("root@aigrader.app", role="superadmin")
    response = client.get("/api/admin/stats", headers=headers(superadmin))
    assert response.status_code == 200
    assert response.json() == {"organizations": 1, "users": 2, "evaluations": 1}
