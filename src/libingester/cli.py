"""CLI for inspecting and maintaining written hatches."""

from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv

from common.cli_helpers import setup_logging
from libingester.config import load_config, load_config_file
from libingester.errors import IngestError
from libingester.helpers import parse_cli_args, upgrade_manifest, verify_hatch
from libingester.storage import BaseStorage, LocalStorage, get_storage

load_dotenv()

logger = logging.getLogger(__name__)


def resolve_storage(args) -> BaseStorage:
    """Plain local directory unless a config selects the backend."""
    if args.config_file:
        return get_storage(load_config_file(args.config_file), args.path)
    if args.config:
        return get_storage(load_config(args.config), args.path)
    return LocalStorage(args.path)


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = parse_cli_args(argv)

    try:
        storage = resolve_storage(args)

        if args.command == "verify":
            problems = asyncio.run(verify_hatch(storage))
            for problem in problems:
                logger.error(problem)
            if problems:
                logger.error("Hatch at %s has %d problems", storage.location, len(problems))
                return 1
            logger.info("Hatch at %s is valid", storage.location)
            return 0

        if args.command == "upgrade-manifest":
            if asyncio.run(upgrade_manifest(storage)):
                logger.info("Upgraded manifest at %s", storage.location)
            return 0
    except (IngestError, FileNotFoundError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
