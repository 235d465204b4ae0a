# tests/conftest.py
# Shared fixtures: in-memory SQLite database, API client with get_db overridden,
# local storage directory, a fake Gemini client and row factories.

import io
import json
import os
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-length")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

import pypdf  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.db.base  # noqa: F401, E402
from app.core.config import settings  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base_class import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models.class_ import Class, Student  # noqa: E402
from app.models.exam import Exam, Submission  # noqa: E402
from app.models.organization import Organization  # noqa: E402
from app.services import gemini_service, storage_service  # noqa: E402
from app.services.user_service import create_account  # noqa: E402


def make_pdf(pages: int = 1) -> bytes:
    writer = pypdf.PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def verdict(obtained: float = 8, possible: float = 10, questions: list = None) -> dict:
    if questions is None:
        questions = [
            {
                "pregunta_id": "P1",
                "tema": "Fracciones",
                "evaluacion": "CORRECTO",
                "puntuacion_obtenida": 5,
                "puntuacion_posible": 5,
                "tipo_de_error": "ninguno",
                "area_de_mejora": "Seguir practicando",
                "feedback": {"refuerzo_positivo": "Muy bien."},
            },
            {
                "pregunta_id": "P2",
                "tema": "Ecuaciones",
                "evaluacion": "INCORRECTO",
                "puntuacion_obtenida": 3,
                "puntuacion_posible": 5,
                "tipo_de_error": "calculo",
                "area_de_mejora": "Revisar el despeje de incógnitas",
                "feedback": {"explicacion_del_error": "El signo cambia al despejar."},
            },
        ]
    return {
        "informe_evaluacion": {
            "metadatos": {"fecha_evaluacion": "2026-10-19", "examen_id": "Parcial 1"},
            "resumen_general": {
                "puntuacion_total_obtenida": obtained,
                "puntuacion_total_posible": possible,
                "preguntas_correctas": 1,
                "preguntas_parciales": 0,
                "preguntas_incorrectas": 1,
                "comentario_general": "Buen trabajo en general.",
            },
            "evaluacion_detallada": questions,
        }
    }


class FakeGemini:
    """Stands in for genai.Client: client.models.generate_content(...)."""

    def __init__(self):
        self.models = self
        self.text = json.dumps(verdict())
        self.error = None
        self.calls = []

    def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


# ── Database ──────────────────────────────────────────────────────────────────

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def storage_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "storage_local_dir", str(tmp_path / "storage"))
    monkeypatch.setattr(settings, "gcs_exam_bucket", "")
    monkeypatch.setattr(settings, "gcs_logo_bucket", "")
    return tmp_path / "storage"


@pytest.fixture
def fake_gemini(monkeypatch):
    fake = FakeGemini()
    monkeypatch.setattr(gemini_service, "_get_client", lambda: fake)
    return fake


@pytest.fixture
def client(session_factory):
    def _get_test_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _get_test_db
    with_client = TestClient(fastapi_app)
    yield with_client
    fastapi_app.dependency_overrides.clear()


# ── Factories ─────────────────────────────────────────────────────────────────

class Factory:
    def __init__(self, db):
        self.db = db

    def organization(self, name="Colegio Norte", credits=100, parent=None, **fields):
        org = Organization(
            name=name,
            credits_remaining=credits,
            credits_per_period=fields.pop("credits_per_period", credits),
            billing_cycle=fields.pop("billing_cycle", "monthly"),
            parent_id=parent.id if parent else None,
            **fields,
        )
        self.db.add(org)
        self.db.commit()
        return org

    def account(self, email, role="teacher", organization=None, limit=500, password="Secret123!", name=None):
        profile = create_account(
            self.db,
            email=email,
            password=password,
            full_name=name or email.split("@")[0].title(),
            role=role,
            organization_id=organization.id if organization else None,
            monthly_credit_limit=limit,
        )
        self.db.commit()
        return profile

    def classroom(self, teacher, name="Matemáticas 3A", subject="Matemáticas"):
        cls = Class(
            name=name,
            subject=subject,
            teacher_id=teacher.id,
            organization_id=teacher.organization_id,
        )
        self.db.add(cls)
        self.db.commit()
        return cls

    def student(self, cls, name="Ana Pérez", email="ana@alumnos.cl", tutor_email="tutor.ana@mail.cl"):
        student = Student(class_id=cls.id, full_name=name, student_email=email, tutor_email=tutor_email)
        self.db.add(student)
        self.db.commit()
        return student

    def exam(self, cls, name="Parcial 1", with_solution=True, solution_pages=2):
        exam = Exam(class_id=cls.id, name=name, type="exam", subject=cls.subject)
        self.db.add(exam)
        self.db.flush()
        if with_solution:
            exam.solution_file_url = storage_service.upload_bytes(
                storage_service.EXAM_BUCKET,
                f"exams/{exam.id}/solution.pdf",
                make_pdf(solution_pages),
                "application/pdf",
            )
        self.db.commit()
        return exam

    def submission(self, exam, student, pages=3, status="pending"):
        submission = Submission(exam_id=exam.id, student_id=student.id, status=status, submission_file_url="")
        self.db.add(submission)
        self.db.flush()
        submission.submission_file_url = storage_service.upload_bytes(
            storage_service.EXAM_BUCKET,
            f"exams/{exam.id}/submissions/{submission.id}.pdf",
            make_pdf(pages),
            "application/pdf",
        )
        self.db.commit()
        return submission


@pytest.fixture
def factory(db_session):
    return Factory(db_session)


@pytest.fixture
def factory_class():
    return Factory


def auth_headers(profile) -> dict:
    return {"Authorization": f"Bearer {create_access_token(profile.id, profile.role)}"}


@pytest.fixture
def headers():
    return auth_headers
