"""
Storage backends for hatch output.

A hatch is written either to a local directory or to an S3 prefix; the
assembler only talks to the ``BaseStorage`` interface.
"""

from pathlib import Path

from libingester.storage.base import BaseStorage
from libingester.storage.local import LocalStorage
from libingester.storage.s3 import S3Storage

BACKENDS = ("local", "s3")


def get_storage(config, path: str) -> BaseStorage:
    """Build the storage backend selected by ``config.storage.backend``.

    Args:
        config: HatchConfig holding the storage section
        path: Hatch directory name (local) or hatch name under the prefix (s3)
    """
    backend = config.storage.backend
    if backend == "local":
        return LocalStorage(Path(config.storage.local_path) / path)
    if backend == "s3":
        return S3Storage(config.storage.bucket, path, prefix=config.storage.prefix)
    raise ValueError(f"Unknown storage backend: {backend}. Valid backends: {list(BACKENDS)}")


__all__ = [
    "BaseStorage",
    "LocalStorage",
    "S3Storage",
    "get_storage",
]
