"""Tests for libingester.persister module."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

from libingester.assets import Asset
from libingester.errors import PersistenceError
from libingester.models import ObjectType
from libingester.persister import AssetPersister
from libingester.storage import LocalStorage


def _image(payload=b"\xff\xd8\xff\xe0") -> Asset:
    image = Asset(ObjectType.IMAGE, {"title": "Image", "canonical_uri": "https://example.com/i.jpg"})
    if payload is not None:
        image.set_payload("image/jpeg", payload)
    return image


def _read(path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


class TestAssetPersister:
    def test_writes_metadata_and_data(self, tmp_path) -> None:
        image = _image()
        persisted = asyncio.run(AssetPersister(LocalStorage(tmp_path)).persist(image))

        assert persisted is True
        assert image.failed is False
        record = _read(tmp_path / f"{image.id}.metadata")
        assert record["assetID"] == image.id
        assert record["cdnFilename"] == f"{image.id}.data"
        assert (tmp_path / f"{image.id}.data").read_bytes() == b"\xff\xd8\xff\xe0"
        assert not (tmp_path / f"{image.id}.errors").exists()

    def test_article_has_no_data_file(self, tmp_path) -> None:
        article = Asset(ObjectType.ARTICLE, {
            "title": "Headline",
            "body": "<p>Body</p>",
            "canonical_uri": "https://example.com/a",
        })
        article.render()
        assert asyncio.run(AssetPersister(LocalStorage(tmp_path)).persist(article)) is True
        assert _read(tmp_path / f"{article.id}.metadata")["document"] == article.document
        assert not (tmp_path / f"{article.id}.data").exists()

    def test_verification_failure_writes_error_report(self, tmp_path) -> None:
        image = _image(payload=None)
        persisted = asyncio.run(AssetPersister(LocalStorage(tmp_path)).persist(image))

        assert persisted is False
        assert image.failed is True
        assert not (tmp_path / f"{image.id}.metadata").exists()
        report = _read(tmp_path / f"{image.id}.errors")
        assert report["asset_id"] == image.id
        assert report["object_type"] == "ImageObject"
        assert report["error_type"] == "VerificationError"
        assert report["field"] == "cdnFilename"
        assert report["failed_at"]

    def test_non_image_payload_fails_asset(self, tmp_path) -> None:
        image = _image(payload=b"<html>404 Not Found</html>")
        persisted = asyncio.run(AssetPersister(LocalStorage(tmp_path)).persist(image))

        assert persisted is False
        assert not (tmp_path / f"{image.id}.data").exists()
        report = _read(tmp_path / f"{image.id}.errors")
        assert report["error_type"] == "VerificationError"
        assert report["field"] == "data"

    def test_document_payload_is_not_sniffed(self, tmp_path) -> None:
        document = Asset(ObjectType.DOCUMENT, {"title": "Report", "canonical_uri": "https://example.com/r.pdf"})
        document.set_payload("application/pdf", b"%PDF-1.4")
        assert asyncio.run(AssetPersister(LocalStorage(tmp_path)).persist(document)) is True

    def test_payload_error_fails_asset(self, tmp_path) -> None:
        async def broken_download():
            raise ConnectionError("connection reset")

        async def scenario():
            image = _image(payload=broken_download())
            persisted = await AssetPersister(LocalStorage(tmp_path)).persist(image)
            return image, persisted

        image, persisted = asyncio.run(scenario())
        assert persisted is False
        assert image.failed is True
        report = _read(tmp_path / f"{image.id}.errors")
        assert report["error_type"] == "ConnectionError"
        assert report["field"] is None

    def test_storage_error_fails_asset(self, tmp_path) -> None:
        storage = LocalStorage(tmp_path)
        image = _image()
        with patch.object(storage, "write_json", new_callable=AsyncMock) as mock_write:
            mock_write.side_effect = PersistenceError("disk full")
            persisted = asyncio.run(AssetPersister(storage).persist(image))

        assert persisted is False
        assert image.failed is True
        # metadata write and error report were both attempted
        assert mock_write.await_count == 2
