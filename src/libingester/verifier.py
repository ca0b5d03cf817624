"""Shape checks for metadata records and manifest entries, plus image payload sniffing.

Everything here is pure: the functions either return or raise
``VerificationError`` naming the offending field.
"""

import logging
import re
from typing import Any, Optional

import filetype
from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from libingester.errors import VerificationError
from libingester.models import ObjectType

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 140
ASSET_ID_PATTERN = re.compile(r"[0-9a-f]{40}")
URL_SCHEMES = ("http", "https", "ftp")

_url_adapter = TypeAdapter(AnyUrl)


def _check(condition: bool, message: str, metadata: Optional[dict], field: str) -> None:
    if not condition:
        raise VerificationError(message, metadata, field)


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def _verify_common(metadata: dict) -> None:
    asset_id = metadata.get("assetID")
    _check(isinstance(asset_id, str) and ASSET_ID_PATTERN.fullmatch(asset_id) is not None,
           "Asset has invalid assetID", metadata, "assetID")
    _check(isinstance(metadata.get("canonicalURI"), str),
           "Asset has invalid canonicalURI", metadata, "canonicalURI")
    _check(bool(metadata.get("matchingLinks")),
           "Asset missing matchingLinks", metadata, "matchingLinks")
    _check(_is_string_list(metadata["matchingLinks"]),
           "Some asset matching URIs are not strings", metadata, "matchingLinks")
    _check("tags" in metadata and metadata["tags"] is not None,
           "Asset missing tags", metadata, "tags")
    _check(_is_string_list(metadata["tags"]),
           "Some asset tags are not strings", metadata, "tags")
    _check(_non_empty_string(metadata.get("revisionTag")),
           "Asset missing revisionTag", metadata, "revisionTag")


def _verify_title(metadata: dict) -> None:
    _check(_non_empty_string(metadata.get("title")),
           "Metadata missing title", metadata, "title")
    if len(metadata["title"]) > MAX_TITLE_LENGTH:
        logger.warning("Found a really long title! (%d chars) in asset %s",
                       len(metadata["title"]), metadata.get("assetID"))


def _verify_article(metadata: dict) -> None:
    _verify_title(metadata)
    _check(_non_empty_string(metadata.get("document")),
           "Metadata missing document", metadata, "document")


def _verify_image(metadata: dict) -> None:
    _check(bool(metadata.get("cdnFilename")),
           "Image object missing cdnFilename (has no data?)", metadata, "cdnFilename")


def _verify_dictionary_word(metadata: dict) -> None:
    _check(bool(metadata.get("word")), "Metadata missing word", metadata, "word")
    _check(bool(metadata.get("definition")), "Metadata missing definition", metadata, "definition")


def _verify_document(metadata: dict) -> None:
    _verify_title(metadata)
    _check(bool(metadata.get("cdnFilename")),
           "Document object missing cdnFilename (has no data?)", metadata, "cdnFilename")


def _verify_video(metadata: dict) -> None:
    _check(not metadata.get("contentType"),
           "Video object should have its contentType set later", metadata, "contentType")


TYPE_VERIFIERS = {
    ObjectType.ARTICLE.value: _verify_article,
    ObjectType.IMAGE.value: _verify_image,
    ObjectType.VIDEO.value: _verify_video,
    ObjectType.DICTIONARY_WORD.value: _verify_dictionary_word,
    ObjectType.DOCUMENT.value: _verify_document,
}


def verify_metadata(metadata: dict) -> None:
    """Check a metadata record against the rules of its ``objectType``.

    Raises:
        VerificationError: With ``field`` set to the first field that failed.
    """
    type_verifier = TYPE_VERIFIERS.get(metadata.get("objectType"))
    if type_verifier is None:
        raise VerificationError("Metadata has wrong objectType", metadata, "objectType")

    _verify_common(metadata)

    if metadata["objectType"] != ObjectType.VIDEO.value:
        _check(isinstance(metadata.get("contentType"), str),
               "Asset has invalid contentType", metadata, "contentType")

    type_verifier(metadata)


def is_valid_url(uri: str) -> bool:
    """True for absolute http(s)/ftp URLs with a host."""
    try:
        url = _url_adapter.validate_python(uri)
    except PydanticValidationError:
        return False
    return url.scheme in URL_SCHEMES and bool(url.host)


def verify_manifest_entry(entry) -> None:
    """Check the URI of a manifest entry; ``data:`` URIs are always accepted."""
    uri = entry.uri
    if isinstance(uri, str) and uri.startswith("data:"):
        return
    _check(isinstance(uri, str) and is_valid_url(uri),
           f"Manifest entry {entry.asset_id} has an invalid uri {uri!r}", None, "uri")


def verify_image_data(data: bytes | str) -> None:
    """Check that an image payload's bytes are actually an image."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    mime = filetype.guess_mime(data)
    _check(mime is not None and mime.startswith("image/"),
           f"Image data has wrong mime type {mime!r}", None, "data")
