"""Hatch manifest models and writer.

The manifest is ``hatch_manifest.json`` at the hatch root. Only one dialect
is written: version 2, where every asset and video entry carries its id,
URI, title and top-level flag. Older hatches listing bare asset ids can be
brought forward with ``upgrade_legacy_manifest``.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from libingester.storage import BaseStorage

logger = logging.getLogger(__name__)

HATCH_VERSION = 2
MANIFEST_FILENAME = "hatch_manifest.json"


class ManifestEntry(BaseModel):
    """One asset or video listed in the manifest."""

    model_config = ConfigDict(populate_by_name=True)

    asset_id: str
    uri: Optional[str] = None
    title: Optional[str] = None
    is_top_level: bool = Field(default=True, alias="isTopLevel")


class HatchManifest(BaseModel):
    """Index of every asset in a hatch."""

    name: str
    language: str
    hatch_version: int = HATCH_VERSION
    assets: list[ManifestEntry] = Field(default_factory=list)
    videos: list[ManifestEntry] = Field(default_factory=list)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class ManifestWriter:
    """Commits the manifest, the last file written to a hatch."""

    def __init__(self, storage: BaseStorage):
        self.storage = storage

    async def write(self, manifest: HatchManifest) -> str:
        path = await self.storage.write_json(MANIFEST_FILENAME, manifest.to_record())
        logger.info(
            "Wrote manifest with %d assets and %d videos to %s",
            len(manifest.assets), len(manifest.videos), path,
        )
        return path


def is_legacy_manifest(data: dict) -> bool:
    """True for manifests that list bare asset ids."""
    return data.get("hatch_version", 0) < HATCH_VERSION or any(
        isinstance(entry, str) for entry in data.get("assets", [])
    )


async def upgrade_legacy_manifest(data: dict[str, Any], storage: BaseStorage) -> HatchManifest:
    """Rebuild a legacy manifest in the current dialect from asset metadata.

    Legacy hatches carry no dependency information, so every entry is marked
    top-level.
    """
    entries = []
    for entry in data.get("assets", []):
        asset_id = entry if isinstance(entry, str) else entry["asset_id"]
        metadata = await storage.read_json(f"{asset_id}.metadata")
        entries.append(ManifestEntry(
            asset_id=metadata["assetID"],
            uri=metadata.get("canonicalURI"),
            title=metadata.get("title"),
            is_top_level=True,
        ))

    logger.warning("Upgraded legacy manifest with %d assets to version %d", len(entries), HATCH_VERSION)
    return HatchManifest(
        name=data["name"],
        language=data["language"],
        assets=entries,
        videos=[ManifestEntry.model_validate(video) for video in data.get("videos", [])],
    )
