"""Hatch assembly: collect assets, prune failures, commit the manifest."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from libingester.assets import Asset
from libingester.errors import (
    FailureRateExceeded,
    IngestError,
    ProgrammerError,
    ValidationError,
    VerificationError,
)
from libingester.graph import (
    compute_top_level,
    failure_rate,
    find_dangling,
    prune_failures,
)
from libingester.manifest import HatchManifest, ManifestEntry, ManifestWriter
from libingester.models import HatchState, ObjectType
from libingester.persister import AssetPersister
from libingester.storage import BaseStorage
from libingester.verifier import verify_manifest_entry

logger = logging.getLogger(__name__)

FAILURE_THRESHOLD = 0.9


class HatchAssembler:
    """Collects the assets of one ingestion run and turns them into a hatch.

    ``save_asset`` schedules persistence as a background task and returns
    at once; ``finish`` is the single join point. Assets live in an
    id-indexed table with their dependency edges captured at save time, and
    all graph work in ``finish`` runs over those ids.

    Must be used from inside a running event loop.
    """

    def __init__(
        self,
        storage: BaseStorage,
        name: str = "libingester",
        language: str = "en",
        failure_threshold: float = FAILURE_THRESHOLD,
        archive: bool = False,
    ):
        self.storage = storage
        self.name = name
        self.language = language
        self.failure_threshold = failure_threshold
        self.archive = archive

        self._state = HatchState.OPEN
        self._assets: dict[str, Asset] = {}
        self._dependents: dict[str, list[str]] = {}
        self._failed_ids: set[str] = set()
        self._tasks: dict[str, asyncio.Task] = {}
        self._persister = AssetPersister(storage)
        self._writer = ManifestWriter(storage)

        self.manifest: Optional[HatchManifest] = None
        self.archive_path: Optional[str] = None

    @property
    def state(self) -> HatchState:
        return self._state

    @property
    def assets(self) -> list[Asset]:
        return list(self._assets.values())

    @property
    def failed_asset_ids(self) -> set[str]:
        return set(self._failed_ids)

    def _ensure_open(self, operation: str) -> None:
        if self._state is not HatchState.OPEN:
            raise ProgrammerError(f"Cannot {operation} once the hatch is {self._state.value}")

    def _register(self, asset: Asset) -> bool:
        """Add an asset to the table; False if this object was already there."""
        existing = self._assets.get(asset.id)
        if existing is not None:
            if existing is not asset:
                raise ProgrammerError(f"Hatch already holds a different asset with id {asset.id}")
            return False
        self._assets[asset.id] = asset
        self._dependents[asset.id] = asset.get_dependent_asset_ids()
        return True

    def save_asset(self, asset: Asset) -> Optional[asyncio.Task]:
        """Register an asset and schedule its persistence.

        Saving the same asset object twice is a no-op, so an image shared by
        several articles is only written once.

        Returns:
            The persistence task, or None if the asset was already saved or
            is already marked failed.

        Raises:
            ProgrammerError: If ``finish`` has begun, the asset is not
                rendered yet, or another asset holds the same id.
        """
        self._ensure_open("save assets")
        if asset.failed:
            self.save_failed_asset(asset)
            return None

        asset.check_ready()
        if not self._register(asset):
            logger.debug("Asset %s already saved, skipping", asset.id)
            return self._tasks.get(asset.id)

        task = asyncio.create_task(self._persister.persist(asset), name=f"persist-{asset.id}")
        self._tasks[asset.id] = task
        return task

    def save_asset_tree(self, asset: Asset) -> None:
        """Save an asset and every descendant that is not saved yet."""
        self._ensure_open("save assets")
        for node in asset.walk():
            if node.id not in self._assets:
                self.save_asset(node)

    def save_failed_asset(self, asset: Asset) -> None:
        """Record an asset the producer already knows is unusable."""
        self._ensure_open("save failed assets")
        if asset.id in self._assets and self._assets[asset.id] is not asset:
            raise ProgrammerError(f"Hatch already holds a different asset with id {asset.id}")
        if asset.id not in self._assets:
            self._assets[asset.id] = asset
            self._dependents[asset.id] = asset.get_dependent_asset_ids()
        asset.failed = True
        self._failed_ids.add(asset.id)
        logger.info("Asset %s marked as failed", asset.id)

    async def _drain(self) -> None:
        asset_ids = list(self._tasks)
        results = await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        for asset_id, result in zip(asset_ids, results):
            if isinstance(result, BaseException):
                logger.error("Persistence of asset %s raised %s: %s",
                             asset_id, type(result).__name__, result)
                self._assets[asset_id].failed = True
        self._failed_ids.update(asset_id for asset_id, asset in self._assets.items() if asset.failed)

    async def finish(self) -> HatchManifest:
        """Wait for persistence, validate the hatch and write its manifest.

        Raises:
            FailureRateExceeded: If more than ``failure_threshold`` of the
                assets failed.
            ValidationError: If a surviving asset references an asset that
                is not in the hatch, or a manifest URI is malformed.
            ProgrammerError: If called twice.
        """
        self._ensure_open("finish")
        self._state = HatchState.DRAINING
        logger.info("Finishing hatch %s: waiting on %d assets", self.name, len(self._tasks))

        try:
            await self._drain()
            manifest = self._validate()
            self._state = HatchState.VALIDATED

            await self._writer.write(manifest)
            if self.archive:
                self.archive_path = await self.storage.archive()
        except IngestError:
            self._state = HatchState.ABORTED
            raise

        self.manifest = manifest
        self._state = HatchState.FINALIZED
        logger.info("Hatch created at %s", self.storage.location)
        return manifest

    def _validate(self) -> HatchManifest:
        asset_ids = list(self._assets)
        result = prune_failures(asset_ids, self._dependents, self._failed_ids)

        total = len(asset_ids)
        failed = len(result.failed)
        if total and failure_rate(failed, total) > self.failure_threshold:
            logger.error("Rejecting hatch %s: %d of %d assets failed", self.name, failed, total)
            raise FailureRateExceeded(failed, total, self.failure_threshold)

        if result.failed_by_association:
            logger.warning("%d assets failed because a dependency failed",
                           len(result.failed_by_association))
            for asset_id in result.failed_by_association:
                self._assets[asset_id].failed = True
            self._failed_ids.update(result.failed_by_association)
        if result.pruned_dependents:
            logger.warning("Pruned %d dependents of failed assets", len(result.pruned_dependents))

        top_level = compute_top_level(asset_ids, self._dependents)
        surviving = [self._assets[asset_id] for asset_id in result.surviving]
        for asset in surviving:
            asset.is_top_level = asset.id in top_level

        dangling = find_dangling(result.surviving, self._dependents)
        if dangling:
            raise ValidationError(
                f"Surviving assets reference {len(dangling)} assets missing from the hatch",
                dangling_ids=dangling,
            )

        manifest = HatchManifest(name=self.name, language=self.language)
        for asset in surviving:
            is_video = asset.object_type is ObjectType.VIDEO
            entry = ManifestEntry(
                asset_id=asset.id,
                uri=(asset.fields.download_uri if is_video else None) or asset.canonical_uri,
                title=asset.fields.title,
                is_top_level=asset.is_top_level,
            )
            try:
                verify_manifest_entry(entry)
            except VerificationError as e:
                raise ValidationError(str(e)) from e

            if is_video:
                manifest.videos.append(entry)
            else:
                manifest.assets.append(entry)

        logger.info("Hatch %s validated: %d of %d assets kept", self.name, len(surviving), total)
        return manifest
