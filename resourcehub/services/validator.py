"""
Payload validation for resource creation and the publish transition.

Every problem is collected before reporting, so a caller sees all offending
fields at once. Within a single field the first failing rule wins. Messages
quote the field name, e.g. `"title" is required`.
"""

import logging
import uuid
from typing import Any, Dict, Mapping, Optional, Protocol

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from resourcehub.core.errors import ValidationFailedError
from resourcehub.models.resource import NewResource
from resourcehub.models.topic import Topic

logger = logging.getLogger(__name__)

CREATE_FIELDS = ("title", "url", "description", "topic")
PUBLISH_FIELDS = ("draft",)

_URL_ADAPTER = TypeAdapter(AnyUrl)


class TopicResolver(Protocol):
    async def resolve(self, topic_id: uuid.UUID) -> Optional[Topic]: ...


def required_message(field: str) -> str:
    return f'"{field}" is required'


def not_allowed_message(field: str) -> str:
    return f'"{field}" is not allowed'


def not_object_message() -> str:
    return '"value" must be of type object'


def _check_required_string(payload: Mapping[str, Any], field: str) -> Optional[str]:
    if field not in payload or payload[field] is None:
        return required_message(field)
    value = payload[field]
    if not isinstance(value, str):
        return f'"{field}" must be a string'
    if not value.strip():
        return f'"{field}" is not allowed to be empty'
    return None


def _check_optional_string(payload: Mapping[str, Any], field: str) -> Optional[str]:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        return f'"{field}" must be a string'
    if not value.strip():
        return f'"{field}" is not allowed to be empty'
    return None


def is_absolute_uri(value: str) -> bool:
    """
    True when `value` parses as a URI with both a scheme and a host.

    Anything the URL parser would quietly normalize away is rejected up front
    (whitespace anywhere, control characters, backslashes), so the stored url
    is exactly the string that was checked.
    """
    if any(ch.isspace() or not ch.isprintable() or ch == "\\" for ch in value):
        return False
    try:
        parsed = _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return False
    return bool(parsed.scheme) and bool(parsed.host)


def parse_topic_reference(value: Any) -> Optional[uuid.UUID]:
    """Return the topic UUID, or None if `value` is not a well-formed reference."""
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def check_create_payload(payload: Any) -> Dict[str, str]:
    """
    Syntactic checks for a creation payload.

    Topic existence is not checked here (it needs the Topic collaborator);
    see `ResourceValidator.validate_create`.
    """
    if not isinstance(payload, Mapping):
        return {"value": not_object_message()}

    errors: Dict[str, str] = {}

    title_error = _check_required_string(payload, "title")
    if title_error:
        errors["title"] = title_error

    url_error = _check_required_string(payload, "url")
    if url_error is None and not is_absolute_uri(payload["url"]):
        url_error = '"url" must be a valid uri'
    if url_error:
        errors["url"] = url_error

    description_error = _check_optional_string(payload, "description")
    if description_error:
        errors["description"] = description_error

    topic_value = payload.get("topic")
    if topic_value is not None and parse_topic_reference(topic_value) is None:
        errors["topic"] = '"topic" must be a valid GUID'

    for key in payload:
        if key not in CREATE_FIELDS:
            errors[str(key)] = not_allowed_message(str(key))

    return errors


def check_publish_payload(payload: Any) -> Dict[str, str]:
    """
    Checks for the publish transition: exactly `{"draft": false}`.

    Each extra field yields its own "is not allowed" message; `draft` must be
    present and must be the boolean false (not 0, not "false").
    """
    if not isinstance(payload, Mapping):
        return {"value": not_object_message()}

    errors: Dict[str, str] = {}
    if "draft" not in payload:
        errors["draft"] = required_message("draft")
    elif payload["draft"] is not False:
        errors["draft"] = '"draft" must be [false]'

    for key in payload:
        if key not in PUBLISH_FIELDS:
            errors[str(key)] = not_allowed_message(str(key))
    return errors


class ResourceValidator:
    """Validates payloads, resolving topic references through the Topic collaborator."""

    def __init__(self, topic_resolver: TopicResolver):
        self.topic_resolver = topic_resolver

    async def validate_create(self, payload: Any) -> NewResource:
        errors = check_create_payload(payload)
        if "value" in errors:
            raise ValidationFailedError(errors)

        topic_id: Optional[uuid.UUID] = None
        topic: Optional[Topic] = None
        if "topic" not in errors and payload.get("topic") is not None:
            topic_id = parse_topic_reference(payload["topic"])
            # Resolve even when other fields failed so every problem is reported.
            topic = await self.topic_resolver.resolve(topic_id)  # type: ignore[arg-type]
            if topic is None:
                errors["topic"] = '"topic" must exist'

        if errors:
            logger.info(f"Create payload rejected: {sorted(errors)}")
            raise ValidationFailedError(errors)

        return NewResource(
            title=payload["title"],
            url=payload["url"],
            description=payload.get("description"),
            topic=topic_id,
            topic_name=topic.name if topic is not None else None,
        )

    def validate_publish(self, payload: Any) -> None:
        errors = check_publish_payload(payload)
        if errors:
            logger.info(f"Publish payload rejected: {sorted(errors)}")
            raise ValidationFailedError(errors)
