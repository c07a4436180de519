"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, reports

api_router = APIRouter()

# Auth (employee login, signup, logout, provisioning, session)
api_router.include_router(auth.router)

# Reports, analytics, health
api_router.include_router(reports.router)
