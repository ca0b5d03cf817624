"""Helper functions for the libingester CLI."""

from __future__ import annotations

import argparse
import logging

from libingester.errors import PersistenceError, VerificationError
from libingester.manifest import (
    MANIFEST_FILENAME,
    ManifestEntry,
    ManifestWriter,
    is_legacy_manifest,
    upgrade_legacy_manifest,
)
from libingester.storage import BaseStorage
from libingester.verifier import verify_manifest_entry, verify_metadata

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".metadata"


async def verify_hatch(storage: BaseStorage) -> list[str]:
    '''Check every metadata record and manifest entry of a written hatch.

    Returns a list of human-readable problems; empty means the hatch is valid.
    '''
    problems = []
    names = await storage.list_names()

    metadata_ids = set()
    for name in names:
        if not name.endswith(METADATA_SUFFIX):
            continue
        asset_id = name[: -len(METADATA_SUFFIX)]
        metadata_ids.add(asset_id)
        try:
            verify_metadata(await storage.read_json(name))
        except (PersistenceError, VerificationError) as e:
            problems.append(f"{name}: {e}")

    if MANIFEST_FILENAME not in names:
        problems.append(f"{MANIFEST_FILENAME} is missing")
        return problems

    manifest = await storage.read_json(MANIFEST_FILENAME)
    if is_legacy_manifest(manifest):
        problems.append(f"{MANIFEST_FILENAME} uses the legacy format, run upgrade-manifest")
        return problems

    for raw_entry in manifest.get("assets", []) + manifest.get("videos", []):
        entry = ManifestEntry.model_validate(raw_entry)
        try:
            verify_manifest_entry(entry)
        except VerificationError as e:
            problems.append(f"{MANIFEST_FILENAME}: {e}")
        if entry.asset_id not in metadata_ids:
            problems.append(f"{MANIFEST_FILENAME}: asset {entry.asset_id} has no metadata file")

    return problems


async def upgrade_manifest(storage: BaseStorage) -> bool:
    '''Rewrite a legacy manifest in the current format; False if already current.'''
    manifest = await storage.read_json(MANIFEST_FILENAME)
    if not is_legacy_manifest(manifest):
        logger.info("Manifest at %s is already current", storage.location)
        return False

    upgraded = await upgrade_legacy_manifest(manifest, storage)
    await ManifestWriter(storage).write(upgraded)
    return True


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    '''Parse CLI arguments for the libingester tool.'''

    parser = argparse.ArgumentParser(prog="libingester", description="Inspect and maintain hatches")
    config_group = parser.add_mutually_exclusive_group()
    config_group.add_argument(
        "--config",
        help="Config name under libingester/configs; selects the storage backend holding the hatch",
    )
    config_group.add_argument("--config-file", help="Explicit YAML config file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify = subparsers.add_parser("verify", help="Verify the metadata and manifest of a hatch directory")
    verify.add_argument("path", help="Hatch directory")

    upgrade = subparsers.add_parser("upgrade-manifest", help="Rewrite a legacy manifest in the current format")
    upgrade.add_argument("path", help="Hatch directory")

    return parser.parse_args(argv)
