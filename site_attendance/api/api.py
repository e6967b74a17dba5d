"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from site_attendance.api.endpoints import (admin, attendance, auth, dashboard,
                                           sites, workers)

api_router = APIRouter()

# Login, current user, password change
api_router.include_router(auth.router)

# Foreman → site incharge → admin workflow
api_router.include_router(attendance.router)

# User, site and worker management
api_router.include_router(admin.router)
api_router.include_router(sites.router)
api_router.include_router(workers.router)

# Dashboard aggregates & health
api_router.include_router(dashboard.router)
