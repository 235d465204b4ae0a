# app/db/base.py
# Alembic model registry -- imports Base + every model so Alembic detects all tables.
# Do NOT import this file from model files (use app.db.base_class instead).
# This file is imported by:
#   - alembic/env.py        (schema detection)
#   - app/db/init_db.py     (seeding)
#   - endpoint modules      (so relationships resolve before the first query)

from app.db.base_class import Base  # noqa: F401

# ── Import all models here so Alembic can detect them ────────────────────────
# Order matters: parent tables before child tables (foreign key dependencies)

from app.models.organization import Organization                       # noqa: F401, E402
from app.models.user import User, RefreshToken, Profile                # noqa: F401, E402
from app.models.class_ import Class, Student                           # noqa: F401, E402
from app.models.exam import Exam, Submission, Grade                    # noqa: F401, E402
from app.models.credit import CreditTransaction                        # noqa: F401, E402
from app.models.audit import AuditLog                                  # noqa: F401, E402
