"""Tests for libingester.storage package."""

import asyncio
import tarfile
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError

from libingester.config import HatchConfig, StorageConfig
from libingester.errors import PersistenceError
from libingester.storage import LocalStorage, S3Storage, get_storage


class TestLocalStorage:
    def test_json_round_trip(self, tmp_path) -> None:
        storage = LocalStorage(tmp_path / "hatch")

        async def scenario():
            path = await storage.write_json("a.metadata", {"title": "Café"})
            return path, await storage.read_json("a.metadata")

        path, data = asyncio.run(scenario())
        assert data == {"title": "Café"}
        assert Path(path) == (tmp_path / "hatch" / "a.metadata").resolve()
        assert "Café" in (tmp_path / "hatch" / "a.metadata").read_text(encoding="utf-8")

    def test_write_text_file(self, tmp_path) -> None:
        storage = LocalStorage(tmp_path)
        asyncio.run(storage.write_file("a.data", "text payload"))
        assert (tmp_path / "a.data").read_bytes() == b"text payload"

    def test_no_temp_files_left(self, tmp_path) -> None:
        storage = LocalStorage(tmp_path)
        asyncio.run(storage.write_file("a.data", b"bytes"))
        assert [p.name for p in tmp_path.iterdir()] == ["a.data"]

    def test_failed_replace_raises_and_cleans_up(self, tmp_path) -> None:
        storage = LocalStorage(tmp_path)
        with patch("libingester.storage.local.os.replace", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                asyncio.run(storage.write_file("a.data", b"bytes"))
        assert list(tmp_path.iterdir()) == []

    def test_read_missing_raises(self, tmp_path) -> None:
        with pytest.raises(PersistenceError):
            asyncio.run(LocalStorage(tmp_path).read_json("missing.metadata"))

    def test_list_names_skips_temp_files(self, tmp_path) -> None:
        (tmp_path / "b.metadata").write_text("{}")
        (tmp_path / "a.data").write_text("x")
        (tmp_path / ".c.metadata.tmp").write_text("{}")
        assert asyncio.run(LocalStorage(tmp_path).list_names()) == ["a.data", "b.metadata"]

    def test_list_names_of_missing_root(self, tmp_path) -> None:
        assert asyncio.run(LocalStorage(tmp_path / "nope").list_names()) == []

    def test_archive(self, tmp_path) -> None:
        storage = LocalStorage(tmp_path / "hatch_test")
        asyncio.run(storage.write_json("hatch_manifest.json", {"assets": []}))

        archive_path = asyncio.run(storage.archive())

        assert archive_path == str(tmp_path / "hatch_test.tar.gz")
        with tarfile.open(archive_path) as tar:
            assert "hatch_test/hatch_manifest.json" in tar.getnames()


class TestS3Storage:
    def test_requires_bucket(self) -> None:
        with pytest.raises(ValueError):
            S3Storage("", "hatch_1")

    def test_write_json_puts_object(self) -> None:
        client = Mock()
        storage = S3Storage("bucket", "hatch_1", prefix="hatches", client=client)

        path = asyncio.run(storage.write_json("a.metadata", {"x": 1}))

        assert path == "s3://bucket/hatches/hatch_1/a.metadata"
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Key"] == "hatches/hatch_1/a.metadata"
        assert kwargs["ContentType"] == "application/json"

    def test_data_file_is_octet_stream(self) -> None:
        client = Mock()
        storage = S3Storage("bucket", "hatch_1", client=client)
        asyncio.run(storage.write_file("a.data", b"\x00"))
        assert client.put_object.call_args.kwargs["ContentType"] == "application/octet-stream"

    def test_client_error_becomes_persistence_error(self) -> None:
        client = Mock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        storage = S3Storage("bucket", "hatch_1", client=client)
        with pytest.raises(PersistenceError):
            asyncio.run(storage.write_file("a.data", b"x"))

    def test_read_json(self) -> None:
        client = Mock()
        client.get_object.return_value = {"Body": Mock(read=Mock(return_value=b'{"a": 1}'))}
        storage = S3Storage("bucket", "hatch_1", client=client)
        assert asyncio.run(storage.read_json("a.metadata")) == {"a": 1}

    def test_list_names_strips_root(self) -> None:
        client = Mock()
        client.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "hatches/hatch_1/b.metadata"}, {"Key": "hatches/hatch_1/a.data"}]},
        ]
        storage = S3Storage("bucket", "hatch_1", prefix="hatches", client=client)
        assert asyncio.run(storage.list_names()) == ["a.data", "b.metadata"]

    def test_archive_is_skipped(self) -> None:
        storage = S3Storage("bucket", "hatch_1", client=Mock())
        assert asyncio.run(storage.archive()) is None

    @patch("libingester.storage.s3.get_s3_client")
    def test_client_created_lazily(self, mock_get_client) -> None:
        storage = S3Storage("bucket", "hatch_1")
        mock_get_client.assert_not_called()
        assert storage.client is mock_get_client.return_value


class TestGetStorage:
    def test_local_backend(self, tmp_path) -> None:
        config = HatchConfig(storage=StorageConfig(backend="local", local_path=str(tmp_path)))
        storage = get_storage(config, "hatch_1")
        assert isinstance(storage, LocalStorage)
        assert storage.root == tmp_path / "hatch_1"

    def test_s3_backend(self) -> None:
        config = HatchConfig(storage=StorageConfig(backend="s3", bucket="bucket"))
        storage = get_storage(config, "hatch_1")
        assert isinstance(storage, S3Storage)
        assert storage.location == "s3://bucket/hatches/hatch_1/"

    def test_unknown_backend(self) -> None:
        config = HatchConfig(storage=StorageConfig(backend="ftp"))
        with pytest.raises(ValueError):
            get_storage(config, "hatch_1")
