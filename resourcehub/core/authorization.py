"""
Authorization gate.

Function:
Classifies the caller of every request into exactly one tier and answers
capability questions for the lifecycle service.

- Anonymous: no valid credential.
- Authenticated: the session holds a well-formed principal.
- Superuser: the request carries `Authorization: Bearer <SUDO_TOKEN>`. The
  token is issued separately from the session cookie; a superuser that also
  has a session keeps its principal.

Classification fails closed. A malformed session principal counts as no
session, and an Authorization header that is present but not exactly the
configured bearer token turns the whole request Anonymous.

Interaction:
- Used by `resourcehub.api.dependencies.get_caller`.
- Used by `resourcehub.services.resource_service` through `require`.
"""

import logging
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Optional, Union

from pydantic import ValidationError
from starlette.requests import Request

from resourcehub.core.errors import UnauthorizedError
from resourcehub.models.principal import Principal

logger = logging.getLogger(__name__)

SESSION_PRINCIPAL_KEY = "principal"
BEARER_SCHEME = "bearer"


class Tier(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    SUPERUSER = "superuser"


class Capability(str, Enum):
    CREATE_RESOURCE = "create_resource"
    READ_PUBLISHED = "read_published"
    READ_DRAFTS = "read_drafts"
    PUBLISH_RESOURCE = "publish_resource"


TIER_CAPABILITIES: Dict[Tier, FrozenSet[Capability]] = {
    Tier.ANONYMOUS: frozenset({Capability.READ_PUBLISHED}),
    Tier.AUTHENTICATED: frozenset(
        {Capability.READ_PUBLISHED, Capability.CREATE_RESOURCE}
    ),
    Tier.SUPERUSER: frozenset(
        {
            Capability.READ_PUBLISHED,
            Capability.READ_DRAFTS,
            Capability.PUBLISH_RESOURCE,
        }
    ),
}


class _CallerBase:
    def can(self, capability: Capability) -> bool:
        return capability in capabilities_of(self)  # type: ignore[arg-type]


@dataclass(frozen=True)
class AnonymousCaller(_CallerBase):
    tier: ClassVar[Tier] = Tier.ANONYMOUS
    principal: ClassVar[None] = None


@dataclass(frozen=True)
class AuthenticatedCaller(_CallerBase):
    principal: Principal
    tier: ClassVar[Tier] = Tier.AUTHENTICATED


@dataclass(frozen=True)
class SuperuserCaller(_CallerBase):
    """Bearer-token caller; `principal` is set only when a session came along too."""

    principal: Optional[Principal] = None
    tier: ClassVar[Tier] = Tier.SUPERUSER


# Classification result: exactly one of the three tiers.
Caller = Union[AnonymousCaller, AuthenticatedCaller, SuperuserCaller]


def capabilities_of(caller: Caller) -> FrozenSet[Capability]:
    match caller:
        case AnonymousCaller():
            return TIER_CAPABILITIES[Tier.ANONYMOUS]
        case AuthenticatedCaller():
            return TIER_CAPABILITIES[Tier.AUTHENTICATED]
        case SuperuserCaller(principal=None):
            return TIER_CAPABILITIES[Tier.SUPERUSER]
        case SuperuserCaller():
            # A superuser with a session identity keeps the authenticated capabilities.
            return TIER_CAPABILITIES[Tier.SUPERUSER] | TIER_CAPABILITIES[Tier.AUTHENTICATED]
    raise TypeError(f"Unknown caller type: {type(caller).__name__}")


def require(caller: Caller, capability: Capability) -> None:
    """Raise `UnauthorizedError` unless the caller holds `capability`."""
    if not caller.can(capability):
        logger.info(
            f"Capability '{capability.value}' denied for tier '{caller.tier.value}'"
        )
        raise UnauthorizedError()


class AuthorizationGate:
    """Pure request classifier. Holds the configured superuser token."""

    def __init__(self, sudo_token: Optional[str]):
        self._sudo_token = sudo_token or None

    def classify(
        self, session: Optional[Mapping[str, Any]], authorization: Optional[str]
    ) -> Caller:
        principal = self._principal_from_session(session)

        if authorization is not None:
            if not self._is_valid_bearer(authorization):
                logger.warning("Rejected Authorization header; treating caller as anonymous.")
                return AnonymousCaller()
            return SuperuserCaller(principal)

        if principal is not None:
            return AuthenticatedCaller(principal)
        return AnonymousCaller()

    def classify_request(self, request: Request) -> Caller:
        # request.session asserts when SessionMiddleware is not installed
        session = request.scope.get("session")
        return self.classify(session, request.headers.get("authorization"))

    @staticmethod
    def _principal_from_session(
        session: Optional[Mapping[str, Any]],
    ) -> Optional[Principal]:
        if not session:
            return None
        raw = session.get(SESSION_PRINCIPAL_KEY)
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            logger.warning("Session principal is not an object; ignoring session.")
            return None
        try:
            return Principal.model_validate(dict(raw))
        except ValidationError as e:
            logger.warning(f"Malformed session principal ignored: {e.error_count()} error(s)")
            return None

    def _is_valid_bearer(self, authorization: str) -> bool:
        if self._sudo_token is None:
            return False
        scheme, _, token = authorization.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != BEARER_SCHEME or not token or " " in token:
            return False
        return secrets.compare_digest(
            token.encode("utf-8"), self._sudo_token.encode("utf-8")
        )
