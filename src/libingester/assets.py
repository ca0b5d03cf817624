"""Asset: a single ingested unit and a node of the hatch dependency graph."""

from __future__ import annotations

import inspect
import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from lxml import html as lxml_html
from lxml.html.builder import E

from common.datetime import generation_timestamp, parse_datetime
from common.hashing import generate_asset_id
from libingester.errors import MetadataNotAllowedError, ProgrammerError
from libingester.models import (
    ASSET_REFERENCE_FIELDS,
    FIXED_CONTENT_TYPES,
    METADATA_TYPES,
    ObjectType,
    allowed_metadata,
    data_filename,
)

logger = logging.getLogger(__name__)

# Attribute marking media in a rendered document that is another asset.
ASSET_REFERENCE_ATTRIBUTE = "data-soma-job-id"

RENDERED_TYPES = (ObjectType.ARTICLE, ObjectType.DICTIONARY_WORD)
PAYLOAD_TYPES = (ObjectType.IMAGE, ObjectType.DOCUMENT)


def _ensure_date(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    try:
        return parse_datetime(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Could not coerce value into a date: %r", value)
        return None


def _ensure_synopsis(value: Optional[str]) -> Optional[str]:
    if value is None:
        logger.warning("Trying to set an empty synopsis! This is most likely an error in the ingester!")
        return None
    return re.sub(r"\s+", " ", value.strip())


def _fragment(markup: str, tag: str, css_class: str):
    element = lxml_html.fragment_fromstring(markup, create_parent=tag)
    element.set("class", css_class)
    return element


class Asset:
    """One ingested unit (article, image, video, dictionary word, document).

    The metadata fields an asset accepts are those of its type's metadata
    dataclass (see ``libingester.models``). Children are the assets this one
    depends on; they are saved to the hatch separately, or together through
    ``HatchAssembler.save_asset_tree``.
    """

    def __init__(self, object_type: ObjectType, metadata: Optional[dict] = None):
        self.object_type = ObjectType(object_type)
        self._id = generate_asset_id()
        self.fields = METADATA_TYPES[self.object_type]()
        self._content_type = FIXED_CONTENT_TYPES.get(self.object_type)
        self.payload: Any = None
        self.document: Optional[str] = None
        self.children: list[Asset] = []
        self.failed = False
        self.is_top_level: Optional[bool] = None

        if metadata:
            self.set_metadata(metadata)

    def __repr__(self) -> str:
        return f"<Asset {self.object_type.name} {self._id}>"

    @property
    def id(self) -> str:
        """40-char hex ID of the asset, fixed at construction."""
        return self._id

    @property
    def content_type(self) -> Optional[str]:
        return self._content_type

    @content_type.setter
    def content_type(self, value: Optional[str]) -> None:
        if self.object_type is ObjectType.VIDEO and value is not None:
            raise ProgrammerError("Video assets get their contentType later, out of band")
        self._content_type = value

    @property
    def canonical_uri(self) -> Optional[str]:
        if self.object_type is ObjectType.VIDEO:
            return self.fields.canonical_uri or self.fields.download_uri
        return self.fields.canonical_uri

    @property
    def revision_tag(self) -> str:
        """Explicit revision tag, else last-modified date, else generation time."""
        if self.fields.revision_tag:
            return self.fields.revision_tag
        if self.fields.last_modified_date:
            return self.fields.last_modified_date.isoformat()
        return generation_timestamp()

    def set_metadata(self, key, value=None) -> None:
        """Set one metadata field, or several at once when given a mapping.

        Every key is checked before anything is assigned, so a rejected
        mapping leaves the asset untouched.

        Raises:
            MetadataNotAllowedError: If a key is not a field of this asset type.
        """
        items = dict(key) if isinstance(key, dict) else {key: value}

        allowed = allowed_metadata(self.object_type)
        for name in items:
            if name not in allowed:
                raise MetadataNotAllowedError(name, self.object_type.value)

        for name, item in items.items():
            setattr(self.fields, name, self._coerce(name, item))

    def _coerce(self, name: str, value: Any) -> Any:
        if name == "title" and isinstance(value, str):
            return value.strip()
        if name == "synopsis":
            return _ensure_synopsis(value)
        if name in ("last_modified_date", "date_published"):
            return _ensure_date(value)
        if name in ("tags", "authors") and isinstance(value, str):
            return [value]
        if name in ("tags", "authors"):
            return list(value or [])
        if name in ASSET_REFERENCE_FIELDS and isinstance(value, Asset):
            if not any(child is value for child in self.children):
                self.children.append(value)
            return value.id
        return value

    def add_child(self, asset: Asset) -> None:
        self.children.append(asset)

    def set_payload(self, content_type: str, data: Any) -> None:
        """Attach the raw payload; ``data`` may be bytes, text or an awaitable."""
        if self.object_type not in PAYLOAD_TYPES:
            raise ProgrammerError(f"{self.object_type.value} assets do not carry a payload")
        self.content_type = content_type
        self.payload = data

    async def resolve_payload(self) -> Any:
        """Await a pending payload, replacing it with its result."""
        if inspect.isawaitable(self.payload):
            self.payload = await self.payload
        return self.payload

    def walk(self) -> Iterator[Asset]:
        """Yield this asset and every descendant once, parents first."""
        seen = set()
        stack = [self]
        while stack:
            asset = stack.pop()
            if asset.id in seen:
                continue
            seen.add(asset.id)
            yield asset
            stack.extend(reversed(asset.children))

    def get_dependent_asset_ids(self) -> list[str]:
        """IDs of every asset this one references, without duplicates."""
        ids = [child.id for child in self.children]
        for name in ASSET_REFERENCE_FIELDS:
            reference = getattr(self.fields, name, None)
            if reference:
                ids.append(reference)
        ids.extend(self._document_asset_ids())
        return list(dict.fromkeys(ids))

    def _document_asset_ids(self) -> list[str]:
        if not self.document:
            return []
        tree = lxml_html.document_fromstring(self.document)
        xpath = f"//*[@{ASSET_REFERENCE_ATTRIBUTE}]/@{ASSET_REFERENCE_ATTRIBUTE}"
        return [str(value) for value in tree.xpath(xpath) if value]

    def check_ready(self) -> None:
        """Raise if the asset cannot be handed to a hatch yet."""
        if self.object_type in RENDERED_TYPES and self.document is None:
            raise ProgrammerError(
                f"Must call render() before saving {self.object_type.value} {self.id} to a hatch"
            )

    def render(self) -> str:
        """Build the HTML document of an article or dictionary word."""
        if self.object_type is ObjectType.ARTICLE:
            self._require("title", "body")
            content = self._render_article()
        elif self.object_type is ObjectType.DICTIONARY_WORD:
            self._require("word", "definition")
            content = self._render_dictionary_word()
        else:
            raise ProgrammerError(f"{self.object_type.value} assets are not rendered")

        title = self.fields.title or getattr(self.fields, "word", None) or ""
        page = E.html(
            E.head(E.meta(charset="utf-8"), E.title(title)),
            E.body(content),
        )
        self.document = lxml_html.tostring(page, encoding="unicode", doctype="<!DOCTYPE html>")
        return self.document

    def _require(self, *names: str) -> None:
        missing = [name for name in names if not getattr(self.fields, name)]
        if missing:
            raise ProgrammerError(
                f"Cannot render {self.object_type.value}: missing {', '.join(missing)}"
            )

    def _main_image_figure(self):
        return E.figure({"class": "main-image", ASSET_REFERENCE_ATTRIBUTE: self.fields.main_image})

    def _render_article(self):
        fields = self.fields
        article = E.article(E.h1(fields.title))
        if fields.authors:
            article.append(E.p({"class": "authors"}, ", ".join(fields.authors)))
        if fields.main_image:
            article.append(self._main_image_figure())
        if fields.lede:
            article.append(_fragment(fields.lede, "div", "lede"))
        article.append(_fragment(fields.body, "section", "body"))
        if fields.read_more_link:
            article.append(E.p({"class": "read-more"}, E.a("Read more", href=fields.read_more_link)))
        return article

    def _render_dictionary_word(self):
        fields = self.fields
        article = E.article(E.h1(fields.word))
        if fields.part_of_speech:
            article.append(E.p({"class": "part-of-speech"}, fields.part_of_speech))
        article.append(E.p({"class": "definition"}, fields.definition))
        if fields.main_image:
            article.append(self._main_image_figure())
        if fields.body:
            article.append(_fragment(fields.body, "section", "body"))
        return article

    def _normalize_tags(self) -> list[str]:
        tags = list(self.fields.tags)
        section = getattr(self.fields, "section", None)
        if section and section not in tags:
            tags.append(section)
        return [tag.strip() for tag in tags if isinstance(tag, str)]

    def to_metadata_record(self) -> dict:
        """Flat camelCase record persisted as ``<id>.metadata``."""
        fields = self.fields
        canonical_uri = self.canonical_uri

        record = {
            "assetID": self.id,
            "objectType": self.object_type.value,
            "canonicalURI": canonical_uri,
            "matchingLinks": [canonical_uri] if canonical_uri else [],
            "title": fields.title,
            "tags": self._normalize_tags(),
            "revisionTag": self.revision_tag,
        }
        if self.object_type is not ObjectType.VIDEO:
            record["contentType"] = self.content_type

        if fields.date_published:
            record["published"] = fields.date_published.isoformat()
        if fields.last_modified_date:
            record["lastModifiedDate"] = fields.last_modified_date.isoformat()
        if fields.sequence_number is not None:
            record["sequenceNumber"] = fields.sequence_number
        if fields.license:
            record["license"] = fields.license
        if fields.can_export is not None:
            record["canExport"] = fields.can_export
        if fields.can_print is not None:
            record["canPrint"] = fields.can_print
        if fields.synopsis:
            record["synopsis"] = fields.synopsis
        if fields.thumbnail:
            record["thumbnail"] = fields.thumbnail
        if self.payload is not None:
            record["cdnFilename"] = data_filename(self.id)

        if self.object_type is ObjectType.ARTICLE:
            record["document"] = self.document
            record["authors"] = list(fields.authors)
            if fields.source:
                record["source"] = fields.source
        elif self.object_type is ObjectType.DICTIONARY_WORD:
            record["document"] = self.document
            record["word"] = fields.word
            record["definition"] = fields.definition
            if fields.part_of_speech:
                record["partOfSpeech"] = fields.part_of_speech

        return record
