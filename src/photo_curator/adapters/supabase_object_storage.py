"""Supabase Storage adapter for original image uploads."""

import asyncio
from dataclasses import dataclass
from typing import Protocol

from supabase import Client


class ObjectStorage(Protocol):
    """Interface for object storage uploads."""

    async def upload(self, content: bytes, key: str, content_type: str) -> str:
        """Store bytes under a key and return a public URL."""


@dataclass
class SupabaseObjectStorage(ObjectStorage):
    """Uploads objects to a Supabase Storage bucket."""

    client: Client
    bucket: str

    async def upload(self, content: bytes, key: str, content_type: str) -> str:
        """Store bytes under a key, replacing any existing object."""
        return await asyncio.to_thread(self._upload, content, key, content_type)

    def _upload(self, content: bytes, key: str, content_type: str) -> str:
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            key,
            content,
            {"content-type": content_type, "upsert": "true"},
        )
        return bucket.get_public_url(key)
