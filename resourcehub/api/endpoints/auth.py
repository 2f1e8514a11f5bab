import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from resourcehub.api import dependencies as deps
from resourcehub.core.authorization import Caller
from resourcehub.core.errors import UnauthorizedError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/principal", summary="Current session principal")
async def get_principal_endpoint(
    caller: Caller = Depends(deps.get_caller),
) -> Dict[str, Any]:
    """Returns the principal from the session; 401 when there is none."""
    if caller.principal is None:
        raise UnauthorizedError()
    return caller.principal.model_dump(exclude_none=True)
