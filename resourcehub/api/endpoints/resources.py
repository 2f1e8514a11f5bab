import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from resourcehub.api import dependencies as deps
from resourcehub.core.authorization import Caller
from resourcehub.core.errors import ResourceHubError
from resourcehub.services.resource_service import ResourceService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Submit a new resource",
    description="Creates a draft resource owned by the session principal.",
)
async def create_resource_endpoint(
    payload: Any = Body(default=None),
    caller: Caller = Depends(deps.get_caller),
    resource_service: ResourceService = Depends(deps.get_resource_service),
) -> Dict[str, Any]:
    logger.info(f"Received resource submission from tier '{caller.tier.value}'")
    try:
        created = await resource_service.create_resource(caller, payload)
        return created.to_public()
    except (HTTPException, ResourceHubError):
        raise
    except Exception as e:
        logger.exception(f"Unexpected error while creating resource: {e}")
        raise HTTPException(
            status_code=500,
            detail="An internal server error occurred while creating the resource.",
        )


@router.get(
    "",
    summary="List resources",
    description="Published resources; drafts only when a superuser sets `drafts=true`.",
)
async def list_resources_endpoint(
    drafts: bool = Query(False, description="Return only drafts (superuser only)."),
    caller: Caller = Depends(deps.get_caller),
    resource_service: ResourceService = Depends(deps.get_resource_service),
) -> List[Dict[str, Any]]:
    logger.debug(f"Listing resources (drafts={drafts}, tier='{caller.tier.value}')")
    try:
        resources = await resource_service.list_resources(caller, drafts=drafts)
        return [resource.to_public() for resource in resources]
    except (HTTPException, ResourceHubError):
        raise
    except Exception as e:
        logger.exception(f"Unexpected error while listing resources: {e}")
        raise HTTPException(
            status_code=500,
            detail="An internal server error occurred while listing resources.",
        )


@router.patch(
    "/{resource_id}",
    summary="Publish a draft resource",
    description='Accepts exactly `{"draft": false}`; superuser only.',
)
async def publish_resource_endpoint(
    resource_id: str = Path(..., description="The id of the resource to publish."),
    payload: Any = Body(default=None),
    caller: Caller = Depends(deps.get_caller),
    resource_service: ResourceService = Depends(deps.get_resource_service),
) -> Dict[str, Any]:
    logger.info(f"Received publish request for resource '{resource_id}'")
    try:
        published = await resource_service.publish_resource(
            caller, resource_id, payload
        )
        return published.to_public()
    except (HTTPException, ResourceHubError):
        raise
    except Exception as e:
        logger.exception(f"Unexpected error while publishing resource '{resource_id}': {e}")
        raise HTTPException(
            status_code=500,
            detail="An internal server error occurred while publishing the resource.",
        )
