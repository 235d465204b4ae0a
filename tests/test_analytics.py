# tests/test_analytics.py
# Pure aggregation functions behind the dashboards

from datetime import datetime, timezone
from types import SimpleNamespace

from app.services.analytics_service import (
    compute_class_analytics,
    institution_status,
    monthly_averages,
    pedagogical_insights,
    round_half_up,
)


def _grade(obtained, possible, questions=(), created_at=None):
    return SimpleNamespace(
        score_obtained=obtained,
        score_possible=possible,
        ai_feedback={"informe_evaluacion": {"evaluacion_detallada": list(questions)}},
        created_at=created_at or datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


def _q(qid, verdict, tema=None, error="ninguno", mejora=None):
    return {"pregunta_id": qid, "evaluacion": verdict, "tema": tema, "tipo_de_error": error, "area_de_mejora": mejora}


def test_round_half_up():
    assert round_half_up(84.5) == 85
    assert round_half_up(84.49) == 84
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3


def test_empty_class_yields_zeros():
    stats = compute_class_analytics([])
    assert stats["total_grades"] == 0
    assert stats["general_stats"] == {"class_average": 0, "highest_score": 0, "lowest_score": 0, "passing_rate": 0}
    assert stats["grade_distribution"] == []


def test_class_statistics_and_distribution():
    grades = [
        _grade(9.5, 10, [_q("P1", "CORRECTO")]),
        _grade(6.5, 10, [_q("P2", "INCORRECTO", "Ecuaciones", "calculo")]),
        _grade(4, 10, [_q("P2", "INCORRECTO", "Ecuaciones", "conceptual"), _q("P3", "INCORRECTO", "Gráficos", "calculo")]),
        _grade(3, 0),
    ]

    stats = compute_class_analytics(grades)

    assert stats["total_grades"] == 3
    assert stats["general_stats"] == {
        "class_average": 67,
        "highest_score": 95,
        "lowest_score": 40,
        "passing_rate": 67,
    }
    distribution = {bucket["range"]: bucket["count"] for bucket in stats["grade_distribution"]}
    assert distribution == {"90-100": 1, "80-89": 0, "70-79": 0, "60-69": 1, "0-59": 1}
    assert stats["top_failed_questions"][0] == {
        "question_id": "P2", "tema": "Ecuaciones", "error_count": 2, "percentage": 67,
    }
    assert stats["error_types_frequency"][0] == {"name": "Calculo", "value": 2, "percentage": 67}
    assert stats["error_types_frequency"][1]["name"] == "Conceptual"


def test_monthly_averages_fall_back_to_previous_year():
    today = datetime(2026, 2, 1, tzinfo=timezone.utc)
    grades = [
        _grade(8, 10, created_at=datetime(2025, 3, 5, tzinfo=timezone.utc)),
        _grade(6, 10, created_at=datetime(2025, 3, 20, tzinfo=timezone.utc)),
    ]

    months = monthly_averages(grades, today=today)

    assert len(months) == 12
    assert months[2] == {"month": "Mar", "average": 70}
    assert months[0] == {"month": "Ene", "average": None}


def test_pedagogical_insights_uses_latest_recommendation():
    older = _grade(5, 10, [_q("P1", "INCORRECTO", "Fracciones", mejora="Repasar fracciones")],
                   created_at=datetime(2026, 9, 1, tzinfo=timezone.utc))
    newer = _grade(8, 10, [_q("P1", "CORRECTO", "Fracciones"), _q("P2", "PARCIALMENTE_CORRECTO", "Álgebra", mejora="Practicar álgebra")],
                   created_at=datetime(2026, 10, 1, tzinfo=timezone.utc))

    insights = pedagogical_insights([older, newer])

    assert insights["mastered"] == ["Fracciones"]
    assert insights["to_review"] == ["Fracciones", "Álgebra"]
    assert insights["recommendation"] == "Practicar álgebra"


def test_institution_status_labels():
    assert institution_status(80) == "Exitoso"
    assert institution_status(79.9) == "En Riesgo"
    assert institution_status(60) == "En Riesgo"
    assert institution_status(59) == "Crítico"


def test_scores_above_maximum_are_capped_at_100():
    stats = compute_class_analytics([_grade(12, 10), _grade(5, 10)])

    assert stats["general_stats"]["highest_score"] == 100
    assert sum(bucket["count"] for bucket in stats["grade_distribution"]) == stats["total_grades"] == 2
    assert stats["grade_distribution"][0] == {"range": "90-100", "count": 1, "percentage": 50}
