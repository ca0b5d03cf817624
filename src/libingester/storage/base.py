from abc import ABC, abstractmethod
from typing import Any, Optional


class BaseStorage(ABC):
    """
    Abstract base class for hatch storage.

    Every file of a hatch lives under one root (a directory or an object
    prefix) and is addressed by name, e.g. ``<asset_id>.metadata``. All
    methods are coroutines; implementations run blocking I/O off the event
    loop and raise ``PersistenceError`` when the backend fails.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location of the hatch root."""

    @abstractmethod
    async def write_file(self, name: str, content: bytes | str) -> str:
        """Write raw content.

        Args:
            name (str): File name relative to the hatch root.
            content (bytes | str): Payload; text is encoded as UTF-8.

        Returns:
            str: The full path or key of the written file.

        Raises:
            PersistenceError: If the write fails.
        """

    @abstractmethod
    async def write_json(self, name: str, obj: Any) -> str:
        """Serialize ``obj`` as indented JSON and write it."""

    @abstractmethod
    async def read_json(self, name: str) -> Any:
        """Read and parse a JSON file.

        Raises:
            PersistenceError: If the file is missing or unreadable.
        """

    @abstractmethod
    async def list_names(self) -> list[str]:
        """Names of every file under the hatch root."""

    @abstractmethod
    async def archive(self) -> Optional[str]:
        """Bundle the hatch into a single compressed file.

        Returns:
            Optional[str]: Path of the archive, or None if the backend does
            not produce one.
        """
