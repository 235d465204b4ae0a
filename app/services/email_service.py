# app/services/email_service.py
# Results report emails sent through Resend
#
# Usage:
#   from app.services.email_service import build_results_html, send_email
#   html = build_results_html(student_name, score, max_score, feedback)
#   send_email(["alumno@mail.com"], "Reporte de Calificación - Parcial 1", html)

import logging
from html import escape
from typing import List, Optional

import resend

from app.core.config import settings

logger = logging.getLogger("aigrader.email")


class EmailNotConfigured(RuntimeError):
    pass


class EmailDeliveryError(RuntimeError):
    pass


def _verdict_class(evaluacion: str) -> str:
    verdict = (evaluacion or "").lower()
    if "parcial" in verdict:
        return "partial"
    if verdict == "correcto":
        return "correct"
    return "incorrect"


def _format_score(value: float) -> str:
    return f"{value:g}"


def build_results_html(
    student_name: str,
    score: float,
    max_score: float,
    feedback: Optional[dict],
) -> str:
    """HTML results report: headline score, verdict counts and per-question feedback."""
    report = (feedback or {}).get("informe_evaluacion") or {}
    summary = report.get("resumen_general") or {}
    questions = report.get("evaluacion_detallada") or []

    percentage = round((score / max_score) * 100) if max_score > 0 else 0
    score_color = "#10b981" if percentage >= 80 else "#f59e0b" if percentage >= 60 else "#ef4444"
    border = {"correct": "#10b981", "partial": "#f59e0b", "incorrect": "#ef4444"}

    stats_html = ""
    if summary:
        stats_html = f"""
        <table style="width: 100%; margin: 20px 0; text-align: center;">
            <tr>
                <td style="color: #10b981; font-size: 22px; font-weight: bold;">{int(summary.get("preguntas_correctas") or 0)}</td>
                <td style="color: #f59e0b; font-size: 22px; font-weight: bold;">{int(summary.get("preguntas_parciales") or 0)}</td>
                <td style="color: #ef4444; font-size: 22px; font-weight: bold;">{int(summary.get("preguntas_incorrectas") or 0)}</td>
            </tr>
            <tr style="color: #64748b; font-size: 12px; text-transform: uppercase;">
                <td>Correctas</td><td>Parciales</td><td>Incorrectas</td>
            </tr>
        </table>"""

    question_html = ""
    for index, question in enumerate(questions, start=1):
        item_feedback = question.get("feedback") or {}
        text = (
            item_feedback.get("refuerzo_positivo")
            or item_feedback.get("explicacion_del_error")
            or "Sin feedback detallado."
        )
        label = question.get("pregunta_id") or f"Pregunta {index}"
        color = border[_verdict_class(question.get("evaluacion", ""))]
        question_html += f"""
        <div style="background: #f8fafc; border-left: 4px solid {color}; border-radius: 8px; padding: 16px; margin-bottom: 12px;">
            <h4 style="margin: 0 0 6px 0;">{escape(str(label))}</h4>
            <p style="margin: 0; color: #334155;">{escape(str(text))}</p>
        </div>"""
    if question_html:
        question_html = (
            '<h3 style="border-bottom: 2px solid #e2e8f0; padding-bottom: 8px;">Evaluación Detallada</h3>'
            + question_html
        )

    return f"""
<!DOCTYPE html>
<html lang="es">
<body style="font-family: 'Segoe UI', Arial, sans-serif; max-width: 600px; margin: auto; padding: 20px; background: #f8fafc;">
    <div style="background: #667eea; padding: 24px; border-radius: 12px 12px 0 0; text-align: center;">
        <h1 style="color: white; margin: 0;">Reporte de Calificación</h1>
    </div>
    <div style="background: #fff; padding: 24px; border: 1px solid #e2e8f0; border-radius: 0 0 12px 12px;">
        <h2>Estimado/a {escape(student_name)},</h2>
        <p>Te compartimos el resultado de tu evaluación:</p>
        <div style="text-align: center; padding: 20px; background: #f8fafc; border-radius: 8px;">
            <div style="font-size: 44px; font-weight: bold; color: {score_color};">{_format_score(score)}/{_format_score(max_score)}</div>
            <div style="color: #64748b;">Calificación Final ({percentage}%)</div>
        </div>
        {stats_html}
        {question_html}
        <hr style="border: none; border-top: 1px solid #e2e8f0; margin: 24px 0;">
        <p style="color: #9ca3af; font-size: 12px; text-align: center;">Generado por AI Grader</p>
    </div>
</body>
</html>
"""


def send_email(to: List[str], subject: str, html: str) -> Optional[str]:
    """
    Send the message through Resend. Returns the provider message id.

    Raises:
        EmailNotConfigured  -- RESEND_API_KEY is not set
        EmailDeliveryError  -- the provider rejected the message or could not be reached
    """
    if not settings.resend_api_key:
        raise EmailNotConfigured("Email service is not configured.")

    resend.api_key = settings.resend_api_key
    params = {
        "from": settings.email_from,
        "to": to,
        "subject": subject,
        "html": html,
    }
    try:
        result = resend.Emails.send(params)
    except Exception as e:
        logger.error(f"Resend rejected email: {e}")
        raise EmailDeliveryError("Email provider error.") from e

    message_id = result.get("id") if isinstance(result, dict) else None
    logger.info(f"Email sent to {len(to)} recipient(s): {subject} (id={message_id})")
    return message_id
