# app/services/gemini_service.py
# Gemini wrapper for exam grading
#
# One multimodal request per submission:
#   [grading prompt] [label] [solution PDF] [label] [student PDF]
# The reply must be the JSON verdict described by app.schemas.grading.GradingReport.
#
# Model: GEMINI_MODEL (default gemini-2.5-flash), JSON response mode, low temperature

import json
import logging
import re
from datetime import datetime, timezone
from typing import Optional

from google import genai
from google.genai import types
from pydantic import ValidationError

from app.core.config import settings
from app.schemas.grading import GradingReport

logger = logging.getLogger("aigrader.gemini")


class GradingModelError(Exception):
    """The model call itself failed (network, quota, safety block, empty reply)."""


class GradingResponseInvalid(Exception):
    """The model replied, but not with a verdict matching GradingReport."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


_client: Optional[genai.Client] = None


def _get_client() -> genai.Client:
    global _client
    if _client is None:
        _client = genai.Client(api_key=settings.gemini_api_key)
    return _client


# ── Prompt ────────────────────────────────────────────────────────────────────

GRADING_PROMPT = """ROL Y OBJETIVO:
Eres "Profe-Bot", un especialista en pedagogía y evaluación. Corriges la entrega de
un alumno comparándola con el solucionario oficial y devuelves un informe objetivo,
justo y formativo.

ENTRADAS:
- "solucionario.pdf": el solucionario del profesor, con la puntuación de cada pregunta.
- "entrega_alumno.pdf": el examen resuelto por el alumno (puede estar escaneado o manuscrito).

INSTRUCCIONES:
1. Identifica cada pregunta del solucionario y su puntuación máxima.
2. Localiza la respuesta del alumno para cada pregunta.
3. Clasifica cada respuesta como CORRECTO, PARCIALMENTE_CORRECTO o INCORRECTO.
4. Asigna la puntuación obtenida respetando la puntuación máxima de cada pregunta.
5. Para respuestas incorrectas o parciales indica el tipo de error
   (conceptual, procedimental, calculo, comprension_lectora, incompleto);
   usa "ninguno" cuando la respuesta sea correcta.
6. Escribe refuerzo positivo para los aciertos y una explicación breve del error
   para los fallos, dirigida al alumno.

FORMATO DE SALIDA:
Responde ÚNICAMENTE con un objeto JSON válido, sin texto adicional, con esta estructura:
{{
  "informe_evaluacion": {{
    "metadatos": {{
      "fecha_evaluacion": "{fecha}",
      "examen_id": "{examen}"
    }},
    "resumen_general": {{
      "puntuacion_total_obtenida": 0,
      "puntuacion_total_posible": 0,
      "preguntas_correctas": 0,
      "preguntas_parciales": 0,
      "preguntas_incorrectas": 0,
      "comentario_general": "..."
    }},
    "evaluacion_detallada": [
      {{
        "pregunta_id": "P1",
        "tema": "...",
        "evaluacion": "CORRECTO",
        "puntuacion_obtenida": 0,
        "puntuacion_posible": 0,
        "tipo_de_error": "ninguno",
        "area_de_mejora": "...",
        "feedback": {{
          "refuerzo_positivo": "...",
          "explicacion_del_error": "..."
        }}
      }}
    ]
  }}
}}
"""

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def build_prompt(exam_name: str, today: Optional[str] = None) -> str:
    today = today or datetime.now(timezone.utc).date().isoformat()
    # Exam names are user input; keep them from breaking the JSON template
    safe_name = exam_name.replace('"', "'").replace("{", "(").replace("}", ")")
    return GRADING_PROMPT.format(fecha=today, examen=safe_name)


def build_contents(prompt: str, solution_pdf: bytes, submission_pdf: bytes) -> list:
    return [
        types.Content(
            role="user",
            parts=[
                types.Part.from_text(text=prompt),
                types.Part.from_text(text="solucionario.pdf:"),
                types.Part.from_bytes(data=solution_pdf, mime_type="application/pdf"),
                types.Part.from_text(text="entrega_alumno.pdf:"),
                types.Part.from_bytes(data=submission_pdf, mime_type="application/pdf"),
            ],
        )
    ]


# ── Parsing ───────────────────────────────────────────────────────────────────

def parse_grading_response(raw_text: str) -> GradingReport:
    """
    Strip code fences, decode JSON and validate against GradingReport.
    Raises GradingResponseInvalid on any mismatch.
    """
    if not raw_text or not raw_text.strip():
        raise GradingResponseInvalid("The model returned an empty response.", raw_text or "")

    cleaned = _FENCE_RE.sub("", raw_text).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise GradingResponseInvalid(f"Model response is not valid JSON: {e}", raw_text) from e

    try:
        return GradingReport.model_validate(data)
    except ValidationError as e:
        raise GradingResponseInvalid(
            f"Model response does not match the grading schema ({e.error_count()} errors).",
            raw_text,
        ) from e


# ── Grading Call ──────────────────────────────────────────────────────────────

def grade_exam(exam_name: str, solution_pdf: bytes, submission_pdf: bytes) -> GradingReport:
    """
    Send both PDFs to Gemini and return the validated verdict.

    Raises:
        GradingModelError       -- the call failed or produced no text
        GradingResponseInvalid  -- the text is not a valid verdict
    """
    contents = build_contents(build_prompt(exam_name), solution_pdf, submission_pdf)
    try:
        response = _get_client().models.generate_content(
            model=settings.gemini_model,
            contents=contents,
            config=types.GenerateContentConfig(
                temperature=settings.gemini_temperature,
                response_mime_type="application/json",
            ),
        )
        raw_text = response.text
    except Exception as e:
        logger.error(f"Gemini grading call failed ({settings.gemini_model}): {e}")
        raise GradingModelError(str(e)) from e

    if not raw_text:
        raise GradingModelError("The model returned no text (possibly blocked by safety filters).")

    report = parse_grading_response(raw_text)
    logger.info(
        f"Gemini verdict for '{exam_name}': "
        f"{report.score_obtained}/{report.score_possible}, "
        f"{len(report.informe_evaluacion.evaluacion_detallada)} questions"
    )
    return report
