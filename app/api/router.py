# app/api/router.py
# Master router -- registers all endpoint routers under /api
# Grading, class and dashboard routes keep their flat action-style paths

from fastapi import APIRouter

from app.api.endpoints import (
    admin,
    auth,
    classes,
    dashboards,
    exams,
    grading,
    organizations,
    users,
)

api_router = APIRouter()

# Auth
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

# Classes, rosters, exams & submissions
api_router.include_router(classes.router, tags=["Classes"])
api_router.include_router(exams.router, tags=["Exams"])

# AI grading & results email
api_router.include_router(grading.router, tags=["Grading"])

# Dashboards & analytics
api_router.include_router(dashboards.router, tags=["Dashboards"])

# Superadmin back office
api_router.include_router(organizations.router, prefix="/admin/organizations", tags=["Admin - Organizations"])
api_router.include_router(users.router, prefix="/admin/users", tags=["Admin - Users"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
