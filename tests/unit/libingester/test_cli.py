"""Tests for libingester.cli module."""

import asyncio
import json
from unittest.mock import patch

from libingester.assembler import HatchAssembler
from libingester.assets import Asset
from libingester.cli import main, resolve_storage
from libingester.helpers import parse_cli_args
from libingester.manifest import MANIFEST_FILENAME
from libingester.models import ObjectType
from libingester.storage import LocalStorage, S3Storage


def _write_hatch(root) -> None:
    video = Asset(ObjectType.VIDEO, {"download_uri": "https://cdn.example.com/v.mp4"})

    async def scenario():
        hatch = HatchAssembler(LocalStorage(root))
        hatch.save_asset(video)
        await hatch.finish()

    asyncio.run(scenario())


@patch("libingester.cli.setup_logging")
class TestMain:
    def test_verify_valid_hatch(self, mock_logging, tmp_path) -> None:
        _write_hatch(tmp_path)
        assert main(["verify", str(tmp_path)]) == 0

    def test_verify_reports_problems(self, mock_logging, tmp_path) -> None:
        assert main(["verify", str(tmp_path)]) == 1

    def test_unreadable_manifest_exits_1(self, mock_logging, tmp_path) -> None:
        (tmp_path / MANIFEST_FILENAME).write_text("{not json")
        assert main(["verify", str(tmp_path)]) == 1

    def test_upgrade_manifest(self, mock_logging, tmp_path) -> None:
        _write_hatch(tmp_path)
        assert main(["upgrade-manifest", str(tmp_path)]) == 0
        assert json.loads((tmp_path / MANIFEST_FILENAME).read_text())["hatch_version"] == 2

    def test_missing_config_file_exits_1(self, mock_logging, tmp_path) -> None:
        assert main(["--config-file", str(tmp_path / "nope.yaml"), "verify", str(tmp_path)]) == 1


class TestResolveStorage:
    def test_plain_path_is_local(self, tmp_path) -> None:
        storage = resolve_storage(parse_cli_args(["verify", str(tmp_path)]))
        assert isinstance(storage, LocalStorage)
        assert storage.root == tmp_path

    def test_named_config_selects_backend(self) -> None:
        storage = resolve_storage(parse_cli_args(["--config", "s3", "verify", "hatch_1"]))
        assert isinstance(storage, S3Storage)
        assert storage.location == "s3://libingester-hatches/hatches/hatch_1/"
