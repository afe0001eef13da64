"""Vision client interface and request helpers shared by the analyzers."""

import base64
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from photo_curator.domain.errors import MalformedResponseError

ModelT = TypeVar("ModelT", bound=BaseModel)


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured vision extraction data."""


def parse_vision_payload(raw: dict[str, object], model: type[ModelT]) -> ModelT:
    """Validate a vision payload, treating any mismatch as malformed."""
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Vision response failed validation: {exc.error_count()} error(s)",
            service="vision",
        ) from exc


def strict_schema(model: type[BaseModel]) -> dict[str, object]:
    """Return a JSON schema for structured outputs with every field required."""
    return _strict(model.model_json_schema())


def _strict(schema: dict[str, object]) -> dict[str, object]:
    result = dict(schema)
    properties = result.get("properties")
    if isinstance(properties, dict):
        result["properties"] = {
            key: _strict(value) if isinstance(value, dict) else value
            for key, value in properties.items()
        }
        result["required"] = list(properties)
        result["additionalProperties"] = False
    defs = result.get("$defs")
    if isinstance(defs, dict):
        result["$defs"] = {
            key: _strict(value) if isinstance(value, dict) else value
            for key, value in defs.items()
        }
    for key in ("title", "default"):
        result.pop(key, None)
    return result


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    return "image/jpeg"
