import asyncio
import json
import logging
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from common.aws import build_s3_key, get_s3_client, get_s3_object, list_s3_keys, put_s3_object
from libingester.errors import PersistenceError
from libingester.storage.base import BaseStorage

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".metadata": "application/json",
    ".errors": "application/json",
    ".json": "application/json",
}


class S3Storage(BaseStorage):
    """A hatch stored as objects under ``<prefix>/<hatch_name>/`` in a bucket."""

    def __init__(self, bucket: str, hatch_name: str, prefix: str = "", client=None):
        if not bucket:
            raise ValueError("S3 storage needs a bucket name")
        self.bucket = bucket
        self.hatch_name = hatch_name
        self.prefix = prefix
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_s3_client()
        return self._client

    @property
    def location(self) -> str:
        return f"s3://{self.bucket}/{build_s3_key(self.prefix, self.hatch_name, '')}"

    def _key(self, name: str) -> str:
        return build_s3_key(self.prefix, self.hatch_name, name)

    async def write_file(self, name: str, content: bytes | str) -> str:
        if isinstance(content, str):
            content = content.encode("utf-8")
        key = self._key(name)
        suffix = name[name.rfind("."):] if "." in name else ""
        content_type = CONTENT_TYPES.get(suffix, "application/octet-stream")
        try:
            await asyncio.to_thread(put_s3_object, self.client, self.bucket, key, content, content_type)
        except (BotoCoreError, ClientError) as e:
            raise PersistenceError(f"Error saving s3://{self.bucket}/{key}: {e}") from e
        return f"s3://{self.bucket}/{key}"

    async def write_json(self, name: str, obj: Any) -> str:
        text = json.dumps(obj, indent=2, ensure_ascii=False, default=str)
        return await self.write_file(name, text)

    async def read_json(self, name: str) -> Any:
        key = self._key(name)
        try:
            body = await asyncio.to_thread(get_s3_object, self.client, self.bucket, key)
            return json.loads(body.decode("utf-8"))
        except (BotoCoreError, ClientError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Error reading s3://{self.bucket}/{key}: {e}") from e

    async def list_names(self) -> list[str]:
        root = self._key("")
        try:
            keys = await asyncio.to_thread(list_s3_keys, self.client, self.bucket, root)
        except (BotoCoreError, ClientError) as e:
            raise PersistenceError(f"Error listing s3://{self.bucket}/{root}: {e}") from e
        return sorted(key[len(root):] for key in keys)

    async def archive(self) -> Optional[str]:
        logger.info("Skipping archive, hatch objects already live at %s", self.location)
        return None
