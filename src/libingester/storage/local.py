import asyncio
import json
import logging
import os
import tarfile
from pathlib import Path
from typing import Any, Optional

from libingester.errors import PersistenceError
from libingester.storage.base import BaseStorage

logger = logging.getLogger(__name__)


class LocalStorage(BaseStorage):
    """A hatch stored as a directory on the local filesystem."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    @property
    def location(self) -> str:
        return str(self.root.resolve())

    def _path(self, name: str) -> Path:
        return self.root / name

    def _write_bytes(self, name: str, data: bytes) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        # Write to a temporary file first so readers never see a partial file
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise PersistenceError(f"Error saving {name} to {self.root}: {e}") from e
        return str(path.resolve())

    async def write_file(self, name: str, content: bytes | str) -> str:
        if isinstance(content, str):
            content = content.encode("utf-8")
        return await asyncio.to_thread(self._write_bytes, name, content)

    async def write_json(self, name: str, obj: Any) -> str:
        text = json.dumps(obj, indent=2, ensure_ascii=False, default=str)
        return await self.write_file(name, text)

    def _read_json(self, name: str) -> Any:
        try:
            with self._path(name).open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Error reading {name} from {self.root}: {e}") from e

    async def read_json(self, name: str) -> Any:
        return await asyncio.to_thread(self._read_json, name)

    def _list_names(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.name for p in self.root.iterdir()
            if p.is_file() and not p.name.endswith(".tmp")
        )

    async def list_names(self) -> list[str]:
        return await asyncio.to_thread(self._list_names)

    def _archive(self) -> str:
        archive_path = self.root.with_name(f"{self.root.name}.tar.gz")
        try:
            with tarfile.open(archive_path, "w:gz") as tar:
                tar.add(self.root, arcname=self.root.name)
        except OSError as e:
            raise PersistenceError(f"Error archiving {self.root}: {e}") from e
        return str(archive_path)

    async def archive(self) -> Optional[str]:
        archive_path = await asyncio.to_thread(self._archive)
        logger.info("Archived hatch to %s", archive_path)
        return archive_path
