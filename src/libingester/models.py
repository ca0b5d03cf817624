"""Data models for hatch assembly."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Optional


class ObjectType(str, Enum):
    """Closed set of asset kinds a hatch can carry."""

    ARTICLE = "ArticleObject"
    IMAGE = "ImageObject"
    VIDEO = "VideoObject"
    DICTIONARY_WORD = "DictionaryWordObject"
    DOCUMENT = "DocumentObject"


class HatchState(str, Enum):
    OPEN = "open"
    DRAINING = "draining"
    VALIDATED = "validated"
    FINALIZED = "finalized"
    ABORTED = "aborted"


@dataclass
class BaseMetadata:
    """Fields every asset type accepts."""
    title: Optional[str] = None
    synopsis: Optional[str] = None
    thumbnail: Optional[str] = None
    canonical_uri: Optional[str] = None
    revision_tag: Optional[str] = None
    last_modified_date: Optional[datetime] = None
    date_published: Optional[datetime] = None
    sequence_number: Optional[int] = None
    license: Optional[str] = None
    can_export: Optional[bool] = None
    can_print: Optional[bool] = None
    tags: list[str] = field(default_factory=list)


@dataclass
class ArticleMetadata(BaseMetadata):
    """HTML article rendered from title, lede and body."""
    authors: list[str] = field(default_factory=list)
    source: Optional[str] = None
    section: Optional[str] = None
    lede: Optional[str] = None
    body: Optional[str] = None
    main_image: Optional[str] = None
    read_more_link: Optional[str] = None


@dataclass
class ImageMetadata(BaseMetadata):
    """Image whose bytes are the asset payload."""


@dataclass
class VideoMetadata(BaseMetadata):
    """Video downloaded out of band from ``download_uri``."""
    download_uri: Optional[str] = None


@dataclass
class DictionaryWordMetadata(BaseMetadata):
    """Dictionary entry rendered from word and definition."""
    word: Optional[str] = None
    definition: Optional[str] = None
    part_of_speech: Optional[str] = None
    source: Optional[str] = None
    body: Optional[str] = None
    main_image: Optional[str] = None


@dataclass
class DocumentMetadata(BaseMetadata):
    """Binary document (PDF, EPUB, ...) whose bytes are the asset payload."""


METADATA_TYPES = {
    ObjectType.ARTICLE: ArticleMetadata,
    ObjectType.IMAGE: ImageMetadata,
    ObjectType.VIDEO: VideoMetadata,
    ObjectType.DICTIONARY_WORD: DictionaryWordMetadata,
    ObjectType.DOCUMENT: DocumentMetadata,
}

# Content type fixed by the asset type; the others come with the payload.
FIXED_CONTENT_TYPES = {
    ObjectType.ARTICLE: "text/html",
    ObjectType.DICTIONARY_WORD: "text/html",
}

# Metadata values that hold a reference to another asset.
ASSET_REFERENCE_FIELDS = ("thumbnail", "main_image")


def allowed_metadata(object_type: ObjectType) -> frozenset[str]:
    """Names of the metadata fields accepted by an object type."""
    return frozenset(f.name for f in fields(METADATA_TYPES[object_type]))


@dataclass
class AssetErrorReport:
    """Post-mortem record written as ``<asset_id>.errors``."""
    asset_id: str
    object_type: str
    error_type: str
    message: str
    field: Optional[str]
    failed_at: datetime


def metadata_filename(asset_id: str) -> str:
    return f"{asset_id}.metadata"


def data_filename(asset_id: str) -> str:
    return f"{asset_id}.data"


def errors_filename(asset_id: str) -> str:
    return f"{asset_id}.errors"
