"""Per-asset persistence into a hatch."""

import logging
from datetime import datetime, timezone
from typing import Optional

from common.serialization import serialize_dataclass
from libingester.assets import Asset
from libingester.errors import PersistenceError, VerificationError
from libingester.models import (
    AssetErrorReport,
    ObjectType,
    data_filename,
    errors_filename,
    metadata_filename,
)
from libingester.storage import BaseStorage
from libingester.verifier import verify_image_data, verify_metadata

logger = logging.getLogger(__name__)


class AssetPersister:
    """Writes one asset's metadata and payload files.

    Failures stay local: a record that fails verification, a payload that
    raises, or a storage error mark the asset failed and are reported in
    ``<asset_id>.errors``; ``persist`` itself never raises for them.
    """

    def __init__(self, storage: BaseStorage):
        self.storage = storage

    async def persist(self, asset: Asset) -> bool:
        """Persist ``asset``; returns False if it ended up failed."""
        try:
            await self._write(asset)
        except VerificationError as e:
            logger.error("Asset %s failed verification: %s", asset.id, e)
            if e.metadata:
                logger.debug("Rejected metadata for %s: %s", asset.id, e.metadata)
            await self._fail(asset, e, e.field)
            return False
        except Exception as e:
            logger.error("Failed to persist asset %s: %s: %s", asset.id, type(e).__name__, e)
            await self._fail(asset, e)
            return False

        logger.debug("Persisted asset %s", asset.id)
        return True

    async def _write(self, asset: Asset) -> None:
        data = await asset.resolve_payload()
        if data is not None and asset.object_type is ObjectType.IMAGE:
            verify_image_data(data)

        record = asset.to_metadata_record()
        verify_metadata(record)

        await self.storage.write_json(metadata_filename(asset.id), record)
        if data is not None:
            await self.storage.write_file(data_filename(asset.id), data)

    async def _fail(self, asset: Asset, error: Exception, field: Optional[str] = None) -> None:
        asset.failed = True
        report = AssetErrorReport(
            asset_id=asset.id,
            object_type=asset.object_type.value,
            error_type=type(error).__name__,
            message=str(error),
            field=field,
            failed_at=datetime.now(timezone.utc),
        )
        try:
            await self.storage.write_json(errors_filename(asset.id), serialize_dataclass(report))
        except PersistenceError as e:
            logger.warning("Could not write error report for %s: %s", asset.id, e)
