"""
Resource lifecycle service.

Function:
Orchestrates the create, list and publish flows. Each flow checks the caller's
capability first, then validates the payload, and only then touches the
repository. Writes run inside a single repository transaction.

State machine: Draft --publish (superuser, `{"draft": false}`)--> Published.
Published is terminal.

Interaction:
- Built per request by `resourcehub.api.dependencies.get_resource_service`.
- Uses `ResourceRepository` for storage, `TopicRepository` for topic
  resolution and display names, and `ResourceValidator` for payload rules.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from resourcehub.core.authorization import Caller, Capability, require
from resourcehub.core.errors import (
    InvalidTransitionError,
    ResourceConflictError,
    ResourceNotFoundError,
    UnauthorizedError,
)
from resourcehub.models.resource import (
    PublishPatch,
    Resource,
    ResourceFilter,
    ResourceResponse,
    ResourceState,
)
from resourcehub.repositories.resource_repo import ResourceRepository
from resourcehub.repositories.topic_repo import TopicRepository
from resourcehub.services.projection import (
    project_resource,
    project_resources,
    topic_ids_of,
)
from resourcehub.services.validator import ResourceValidator

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResourceService:
    """Create, list and publish resources on behalf of a classified caller."""

    def __init__(
        self,
        resource_repo: ResourceRepository,
        topic_repo: TopicRepository,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ):
        self.resource_repo = resource_repo
        self.topic_repo = topic_repo
        self.validator = ResourceValidator(topic_repo)
        self.clock = clock
        self.id_factory = id_factory

    async def create_resource(self, caller: Caller, payload: Any) -> ResourceResponse:
        require(caller, Capability.CREATE_RESOURCE)
        if caller.principal is None:
            # Token-only superuser: nothing to record as the source.
            raise UnauthorizedError()

        new_resource = await self.validator.validate_create(payload)

        resource = Resource(
            id=self.id_factory(),
            title=new_resource.title,
            url=new_resource.url,
            description=new_resource.description,
            topic=new_resource.topic,
            source=caller.principal.id,
            accession=self.clock(),
            draft=True,
            publication=None,
        )

        async with self.resource_repo.transaction() as conn:
            existing = await self.resource_repo.find_by_url(resource.url, conn=conn)
            if existing is not None:
                logger.info(
                    f"Rejected duplicate url '{resource.url}' (existing resource {existing.id})"
                )
                raise ResourceConflictError(resource.url)
            created = await self.resource_repo.create(resource, conn=conn)

        logger.info(
            f"Resource {created.id} created as draft by principal {created.source}"
        )
        # Nothing is read after the commit; the name resolved during validation is reused.
        topic_names = (
            {created.topic: new_resource.topic_name}
            if created.topic is not None and new_resource.topic_name is not None
            else {}
        )
        return project_resource(created, topic_names)

    async def list_resources(
        self, caller: Caller, drafts: bool = False
    ) -> List[ResourceResponse]:
        """
        Published resources, or drafts only when a superuser asks for them.

        A non-superuser asking for drafts gets the published listing instead.
        """
        require(caller, Capability.READ_PUBLISHED)
        if drafts and not caller.can(Capability.READ_DRAFTS):
            logger.debug(
                f"Drafts requested by tier '{caller.tier.value}'; listing published instead."
            )
            drafts = False

        resources = await self.resource_repo.list(ResourceFilter(drafts=drafts))
        topic_names = await self.topic_repo.get_names(topic_ids_of(resources))
        return project_resources(resources, topic_names)

    async def publish_resource(
        self, caller: Caller, resource_id: str, payload: Any
    ) -> ResourceResponse:
        require(caller, Capability.PUBLISH_RESOURCE)
        self.validator.validate_publish(payload)

        parsed_id = self._parse_id(resource_id)
        if parsed_id is None:
            raise ResourceNotFoundError(resource_id)

        async with self.resource_repo.transaction() as conn:
            current = await self.resource_repo.find_by_id(
                parsed_id, conn=conn, for_update=True
            )
            if current is None:
                raise ResourceNotFoundError(resource_id)
            if current.state is not ResourceState.DRAFT:
                raise InvalidTransitionError(
                    resource_id, current.state.value, ResourceState.PUBLISHED.value
                )

            patch = PublishPatch(publication=self.clock())
            updated = await self.resource_repo.update(parsed_id, patch, conn=conn)
            if updated is None:
                # Row is locked above, so this only happens if the state check is bypassed
                raise InvalidTransitionError(
                    resource_id, current.state.value, ResourceState.PUBLISHED.value
                )
            topic_names = await self.topic_repo.get_names(
                topic_ids_of([updated]), conn=conn
            )

        logger.info(f"Resource {updated.id} published at {updated.publication}")
        return project_resource(updated, topic_names)

    @staticmethod
    def _parse_id(resource_id: str) -> Optional[uuid.UUID]:
        try:
            return uuid.UUID(str(resource_id))
        except ValueError:
            return None
