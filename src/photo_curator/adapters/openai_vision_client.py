"""OpenAI Responses API client for vision scoring."""

import json
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from photo_curator.adapters.http_errors import parse_retry_after
from photo_curator.domain.errors import (
    MalformedResponseError,
    PermanentRemoteError,
    RateLimitedError,
    RemoteTimeoutError,
    TransientRemoteError,
)
from photo_curator.services.vision import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIVisionClient":
        """Create an OpenAI vision client with SDK retries disabled."""
        return cls(client=AsyncOpenAI(api_key=api_key, max_retries=0))

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
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "photo_analysis",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.APITimeoutError as exc:
            raise RemoteTimeoutError(
                "OpenAI request timed out", service="vision"
            ) from exc
        except openai.RateLimitError as exc:
            raise RateLimitedError(
                "OpenAI rate limit exceeded",
                service="vision",
                retry_after=parse_retry_after(exc.response.headers.get("retry-after")),
            ) from exc
        except (
            openai.AuthenticationError,
            openai.PermissionDeniedError,
            openai.ConflictError,
        ) as exc:
            raise PermanentRemoteError(
                f"OpenAI refused the request: {exc.message}",
                service="vision",
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise TransientRemoteError(
                f"OpenAI error: {exc}", service="vision"
            ) from exc

        output_text = response.output_text
        if not output_text:
            raise MalformedResponseError(
                "OpenAI returned an empty response", service="vision"
            )
        try:
            parsed = json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise MalformedResponseError(
                "OpenAI returned invalid JSON", service="vision"
            ) from exc
        if not isinstance(parsed, dict):
            raise MalformedResponseError(
                "OpenAI returned a non-object payload", service="vision"
            )
        return parsed

    async def close(self) -> None:
        """Close the underlying OpenAI client."""
        await self.client.close()
