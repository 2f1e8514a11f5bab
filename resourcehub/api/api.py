"""
Aggregates the endpoint routers. `resourcehub.main` mounts `api_router` under
`settings.api_prefix` (default `/api`), so `/resources` becomes
`/api/resources`.
"""

from fastapi import APIRouter

from resourcehub.api.endpoints import auth as auth_endpoints
from resourcehub.api.endpoints import resources as resource_endpoints

api_router = APIRouter()

api_router.include_router(
    resource_endpoints.router, prefix="/resources", tags=["Resources"]
)

api_router.include_router(auth_endpoints.router, prefix="/auth", tags=["Auth"])
