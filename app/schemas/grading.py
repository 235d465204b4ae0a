# app/schemas/grading.py
# Grading request/response models + the strict contract for the AI verdict
#
# The model answers in Spanish field names; GradingReport is the shape we
# accept. Anything that does not validate is rejected before it reaches the DB.

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ── AI Verdict Contract ───────────────────────────────────────────────────────

class QuestionFeedback(BaseModel):
    model_config = ConfigDict(extra="allow")

    refuerzo_positivo: Optional[str] = None
    explicacion_del_error: Optional[str] = None


class QuestionEvaluation(BaseModel):
    model_config = ConfigDict(extra="allow")

    pregunta_id: str
    tema: Optional[str] = None
    evaluacion: str  # CORRECTO | PARCIALMENTE_CORRECTO | INCORRECTO
    puntuacion_obtenida: Optional[float] = None
    puntuacion_posible: Optional[float] = None
    tipo_de_error: Optional[str] = None
    area_de_mejora: Optional[str] = None
    feedback: Optional[QuestionFeedback] = None

    @field_validator("pregunta_id", mode="before")
    @classmethod
    def coerce_question_id(cls, v):
        # Models sometimes number questions (1, 2, 3) instead of "P1"
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("evaluacion")
    @classmethod
    def normalise_verdict(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("evaluacion cannot be empty")
        return v


class ReportSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    puntuacion_total_obtenida: float
    puntuacion_total_posible: float = Field(gt=0)
    preguntas_correctas: Optional[int] = None
    preguntas_parciales: Optional[int] = None
    preguntas_incorrectas: Optional[int] = None
    comentario_general: Optional[str] = None

    @field_validator("puntuacion_total_obtenida")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("puntuacion_total_obtenida cannot be negative")
        return v

    @model_validator(mode="after")
    def obtained_within_possible(self) -> "ReportSummary":
        if self.puntuacion_total_obtenida > self.puntuacion_total_posible:
            raise ValueError("puntuacion_total_obtenida cannot exceed puntuacion_total_posible")
        return self


class ReportMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    fecha_evaluacion: Optional[str] = None
    examen_id: Optional[str] = None


class EvaluationReport(BaseModel):
    model_config = ConfigDict(extra="allow")

    metadatos: ReportMetadata = Field(default_factory=ReportMetadata)
    resumen_general: ReportSummary
    evaluacion_detallada: List[QuestionEvaluation]


class GradingReport(BaseModel):
    """Top-level AI output: {"informe_evaluacion": {...}}."""
    model_config = ConfigDict(extra="allow")

    informe_evaluacion: EvaluationReport

    @property
    def score_obtained(self) -> float:
        return self.informe_evaluacion.resumen_general.puntuacion_total_obtenida

    @property
    def score_possible(self) -> float:
        return self.informe_evaluacion.resumen_general.puntuacion_total_posible


# ── API ───────────────────────────────────────────────────────────────────────

class GradeSubmissionRequest(BaseModel):
    submission_id: UUID


class GradeSubmissionResponse(BaseModel):
    success: bool = True
    grade_id: UUID
    feedback: dict
    credits_used: int
    credits_remaining: int
    monthly_credits_used: int
    monthly_credit_limit: int


class SendResultsEmailRequest(BaseModel):
    grade_id: UUID


class SendResultsEmailResponse(BaseModel):
    success: bool = True
    message: str
    recipients: List[str]
    provider_id: Optional[str] = None
