"""Base class for ingestion scripts.

A site-specific ingester subclasses ``Ingester`` and implements ``ingest``,
which produces assets and hands them to the hatch. ``run`` takes care of
building the hatch from config and committing it.

Example:
    class MySiteIngester(Ingester):
        name = "my-site"

        async def ingest(self, hatch):
            article = Asset(ObjectType.ARTICLE, {...})
            article.render()
            hatch.save_asset_tree(article)

    MySiteIngester().run_sync()
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from libingester.assembler import HatchAssembler
from libingester.config import HatchConfig, get_config
from libingester.manifest import HatchManifest
from libingester.storage import BaseStorage, get_storage

logger = logging.getLogger(__name__)


class Ingester:
    """Produces the assets of one hatch."""

    name: Optional[str] = None
    language: Optional[str] = None

    def __init__(self, config: Optional[HatchConfig] = None, storage: Optional[BaseStorage] = None):
        self.config = config or get_config()
        self.name = self.name or self.config.name
        self.language = self.language or self.config.language
        self.path = self.config.path or self.fallback_path()
        self.storage = storage or get_storage(self.config, self.path)

    def fallback_path(self) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
        return f"hatch_{self.name}_{timestamp}"

    def create_hatch(self) -> HatchAssembler:
        return HatchAssembler(
            self.storage,
            name=self.name,
            language=self.language,
            failure_threshold=self.config.failure_threshold,
            archive=self.config.archive,
        )

    async def ingest(self, hatch: HatchAssembler) -> None:
        raise NotImplementedError("Ingester subclasses must implement ingest()")

    async def run(self) -> HatchManifest:
        logger.info("Starting ingestion for %s...", self.name)
        hatch = self.create_hatch()
        await self.ingest(hatch)
        manifest = await hatch.finish()
        logger.info("Ingestion done. Hatch created at %s", self.storage.location)
        return manifest

    def run_sync(self) -> HatchManifest:
        return asyncio.run(self.run())
