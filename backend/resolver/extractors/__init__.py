"""Hosting-page extractors keyed by the classifier's extraction service."""

from .base import Extractor, Page, is_media_url
from .gdflix import GDFlixExtractor
from .gdrive import GDriveExtractor
from .hubcloud import HubCloudExtractor
from .nexdrive import NexDriveExtractor, unpack
from .registry import BUILTIN_EXTRACTORS, ExtractorRegistry, default_registry

__all__ = [
    "BUILTIN_EXTRACTORS",
    "Extractor",
    "ExtractorRegistry",
    "GDFlixExtractor",
    "GDriveExtractor",
    "HubCloudExtractor",
    "NexDriveExtractor",
    "Page",
    "default_registry",
    "is_media_url",
    "unpack",
]
