"""Jina embeddings API client for image vectors."""

import base64
from dataclasses import dataclass
from typing import Protocol

import httpx

from photo_curator.adapters.http_errors import send
from photo_curator.domain.errors import MalformedResponseError


class EmbeddingClient(Protocol):
    """Interface for image embedding lookups."""

    async def embed_image(self, image_bytes: bytes) -> list[float]:
        """Return a fixed-length embedding for an image."""


@dataclass
class JinaEmbeddingClient(EmbeddingClient):
    """HTTPX-backed Jina embeddings client."""

    api_key: str
    http_client: httpx.AsyncClient
    model: str = "jina-clip-v2"
    dimensions: int = 1024
    base_url: str = "https://api.jina.ai/v1"

    @classmethod
    def create(
        cls, api_key: str, model: str = "jina-clip-v2", dimensions: int = 1024
    ) -> "JinaEmbeddingClient":
        """Create a Jina client with a managed httpx session."""
        return cls(
            api_key=api_key,
            http_client=httpx.AsyncClient(),
            model=model,
            dimensions=dimensions,
        )

    async def embed_image(self, image_bytes: bytes) -> list[float]:
        """Embed one image and validate the vector length."""
        response = await send(
            self.http_client,
            "POST",
            f"{self.base_url}/embeddings",
            service="embeddings",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "model": self.model,
                "dimensions": self.dimensions,
                "normalized": True,
                "embedding_type": "float",
                "input": [{"image": base64.b64encode(image_bytes).decode("utf-8")}],
            },
            timeout=30,
        )
        payload = response.json()
        if "detail" in payload:
            raise MalformedResponseError(
                f"Embedding request rejected: {payload['detail']}", service="embeddings"
            )
        try:
            embedding = [float(value) for value in payload["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise MalformedResponseError(
                "Unexpected embeddings response", service="embeddings"
            ) from exc
        if len(embedding) != self.dimensions:
            raise MalformedResponseError(
                f"Expected {self.dimensions} dimensions, got {len(embedding)}",
                service="embeddings",
            )
        return embedding

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
