"""Exception hierarchy for hatch assembly.

Local errors (VerificationError, PersistenceError) are caught per asset and
turn into a failed asset. Fatal errors (ValidationError, FailureRateExceeded)
abort ``HatchAssembler.finish()``. ProgrammerError is raised immediately at
the call site that misused the API.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class IngestError(Exception):
    """Base class for every libingester error."""


class ProgrammerError(IngestError, RuntimeError):
    """The API was used in a way that can never succeed."""


class MetadataNotAllowedError(IngestError, TypeError):
    """A metadata key is not part of the asset type's field set."""

    def __init__(self, key: str, object_type: Any):
        super().__init__(f"The following metadata is not allowed for {object_type}: {key}")
        self.key = key
        self.object_type = object_type


class VerificationError(IngestError):
    """A metadata record or manifest entry failed shape verification."""

    def __init__(
        self,
        message: str,
        metadata: Optional[dict] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.metadata = metadata
        self.field = field


class PersistenceError(IngestError):
    """A storage backend failed to read or write a hatch file."""


class ValidationError(IngestError):
    """The assembled hatch is inconsistent and cannot be published."""

    def __init__(self, message: str, dangling_ids: Iterable[str] = ()):
        super().__init__(message)
        self.dangling_ids = sorted(dangling_ids)


class FailureRateExceeded(IngestError):
    """Too many assets failed for the hatch to be worth publishing."""

    def __init__(self, failed: int, total: int, threshold: float):
        super().__init__(
            f"{failed} of {total} assets failed, above the allowed rate of {threshold:.0%}"
        )
        self.failed = failed
        self.total = total
        self.threshold = threshold
