"""Persistent stores: manifest, page cache, and session assets."""

from .manifest_store import ManifestStore
from .page_cache import PageCache
from .assets import AssetStore, is_ephemeral, image_extension

__all__ = [
    "ManifestStore",
    "PageCache",
    "AssetStore",
    "is_ephemeral",
    "image_extension",
]
