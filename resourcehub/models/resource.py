from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ResourceState(str, Enum):
    """Lifecycle states of a resource. PUBLISHED is terminal."""

    DRAFT = "draft"
    PUBLISHED = "published"


class Resource(BaseModel):
    """
    Core resource model.

    Mirrors the columns of the `resources` table. `publication` is set if and
    only if `draft` is false; the model refuses any other combination.
    """

    id: UUID
    title: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    description: Optional[str] = None
    topic: Optional[UUID] = None
    source: int
    accession: datetime
    draft: bool = True
    publication: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @model_validator(mode="after")
    def check_publication_matches_draft(self) -> "Resource":
        if self.draft and self.publication is not None:
            raise ValueError("a draft resource cannot have a publication timestamp")
        if not self.draft and self.publication is None:
            raise ValueError("a published resource must have a publication timestamp")
        return self

    @property
    def state(self) -> ResourceState:
        return ResourceState.DRAFT if self.draft else ResourceState.PUBLISHED


class NewResource(BaseModel):
    """A validated, normalized creation payload ready for persistence."""

    title: str
    url: str
    description: Optional[str] = None
    topic: Optional[UUID] = None
    # Display name of the resolved topic; not persisted.
    topic_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PublishPatch(BaseModel):
    """The only update shape the repository accepts: the publish transition."""

    draft: Literal[False] = False
    publication: datetime

    model_config = ConfigDict(frozen=True)


class ResourceFilter(BaseModel):
    """Listing filter. `drafts=True` selects drafts only, False published only."""

    drafts: bool = False


class ResourceResponse(Resource):
    """
    Outward representation of a resource.

    `topic_name` is attached at response time from the Topic collaborator and
    is never persisted.
    """

    topic_name: Optional[str] = None

    def to_public(self) -> Dict[str, Any]:
        """JSON-ready dict; `topic_name` only appears when a topic is attached."""
        data = self.model_dump(mode="json")
        if self.topic is None:
            data.pop("topic_name", None)
        return data
