# tests/test_gemini_service.py
# Prompt building, response parsing and the model call wrapper

import json

import pytest

from app.services import gemini_service
from app.services.gemini_service import GradingModelError, GradingResponseInvalid, parse_grading_response

VALID = {
    "informe_evaluacion": {
        "metadatos": {"fecha_evaluacion": "2026-10-19", "examen_id": "Parcial 1"},
        "resumen_general": {"puntuacion_total_obtenida": 7.5, "puntuacion_total_posible": 10},
        "evaluacion_detallada": [
            {"pregunta_id": 1, "tema": "Fracciones", "evaluacion": " correcto ", "tipo_de_error": "ninguno"},
        ],
    }
}


def test_parse_valid_response_with_code_fences():
    raw = "```json\n" + json.dumps(VALID) + "\n```"

    report = parse_grading_response(raw)

    assert report.score_obtained == 7.5
    assert report.score_possible == 10
    question = report.informe_evaluacion.evaluacion_detallada[0]
    assert question.pregunta_id == "1"
    assert question.evaluacion == "CORRECTO"


def test_unknown_fields_are_kept():
    data = json.loads(json.dumps(VALID))
    data["informe_evaluacion"]["resumen_general"]["nota_final"] = "6.0"
    report = parse_grading_response(json.dumps(data))
    assert report.model_dump()["informe_evaluacion"]["resumen_general"]["nota_final"] == "6.0"


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "no es json",
        json.dumps({"resultado": "ok"}),
        json.dumps({"informe_evaluacion": {"resumen_general": {"puntuacion_total_obtenida": 5,
                                                               "puntuacion_total_posible": 0},
                                           "evaluacion_detallada": []}}),
        json.dumps({"informe_evaluacion": {"resumen_general": {"puntuacion_total_obtenida": -1,
                                                               "puntuacion_total_posible": 10},
                                           "evaluacion_detallada": []}}),
    ],
)
def test_invalid_responses_rejected(raw):
    with pytest.raises(GradingResponseInvalid):
        parse_grading_response(raw)


def test_prompt_neutralises_exam_name():
    prompt = gemini_service.build_prompt('Parcial "1" {final}', today="2026-10-19")
    assert '"fecha_evaluacion": "2026-10-19"' in prompt
    assert "Parcial '1' (final)" in prompt


def test_grade_exam_sends_both_pdfs(fake_gemini):
    fake_gemini.text = json.dumps(VALID)

    report = gemini_service.grade_exam("Parcial 1", b"%PDF-solution", b"%PDF-student")

    assert report.score_obtained == 7.5
    call = fake_gemini.calls[0]
    assert call["config"].response_mime_type == "application/json"
    parts = call["contents"][0].parts
    assert len(parts) == 5
    assert parts[2].inline_data.data == b"%PDF-solution"
    assert parts[4].inline_data.data == b"%PDF-student"


def test_grade_exam_wraps_client_errors(fake_gemini):
    fake_gemini.error = ConnectionError("network down")
    with pytest.raises(GradingModelError):
        gemini_service.grade_exam("Parcial 1", b"a", b"b")


def test_grade_exam_empty_text_is_model_error(fake_gemini):
    fake_gemini.text = None
    with pytest.raises(GradingModelError):
        gemini_service.grade_exam("Parcial 1", b"a", b"b")


def test_score_above_possible_is_invalid():
    data = json.loads(json.dumps(VALID))
    data["informe_evaluacion"]["resumen_general"]["puntuacion_total_obtenida"] = 12

    with pytest.raises(GradingResponseInvalid):
        parse_grading_response(json.dumps(data))
