"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from talentmail.api.v1.dependencies.
"""

from fastapi import APIRouter

from talentmail.api.v1.endpoints import email_accounts, health

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(
    email_accounts.router, prefix="/email-accounts", tags=["email-accounts"]
)
