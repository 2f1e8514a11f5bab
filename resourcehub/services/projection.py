"""Response shaping: attaches display-only fields to repository results."""

from typing import Iterable, List, Mapping, Set
from uuid import UUID

from resourcehub.models.resource import Resource, ResourceResponse


def topic_ids_of(resources: Iterable[Resource]) -> Set[UUID]:
    return {resource.topic for resource in resources if resource.topic is not None}


def project_resource(
    resource: Resource, topic_names: Mapping[UUID, str]
) -> ResourceResponse:
    """Build the outward representation; `topic_name` comes from `topic_names`."""
    topic_name = topic_names.get(resource.topic) if resource.topic is not None else None
    return ResourceResponse(**resource.model_dump(), topic_name=topic_name)


def project_resources(
    resources: Iterable[Resource], topic_names: Mapping[UUID, str]
) -> List[ResourceResponse]:
    return [project_resource(resource, topic_names) for resource in resources]
