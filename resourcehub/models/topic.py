from uuid import UUID

from pydantic import BaseModel, ConfigDict


class Topic(BaseModel):
    """A tag entity owned by the topic subsystem; read-only here."""

    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True, frozen=True)
