"""
Module: storage.assets

Purpose:
    Session-local image assets. While editing, a question's image field
    holds an ephemeral handle (``blob:<uuid>``) that is only valid for the
    lifetime of this AssetStore. Archives hold relative paths instead; the
    archive codec is the only place that translates between the two.

Key Classes:
    - AssetStore: register / read / release ephemeral handles

Key Functions:
    - is_ephemeral(ref): True for session handles
    - image_extension(data): File extension from the image's real format

Dependencies:
    - PIL/Pillow: image format detection
"""

from __future__ import annotations

import logging
import threading
import uuid
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional

from PIL import Image, UnidentifiedImageError

from quiz_builder.core.errors import AssetResolutionError

logger = logging.getLogger(__name__)

HANDLE_PREFIX = "blob:"

# Pillow format name -> preferred file extension
_FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "WEBP": "webp",
    "BMP": "bmp",
    "TIFF": "tiff",
}


def is_ephemeral(ref: Optional[str]) -> bool:
    """Check whether ``ref`` is a session asset handle."""
    return isinstance(ref, str) and ref.startswith(HANDLE_PREFIX)


def image_extension(data: bytes, default: str = "png") -> str:
    """
    Detect the file extension for image bytes.

    Args:
        data: Raw image bytes
        default: Returned when Pillow cannot identify the format

    Returns:
        Extension without the dot, e.g. "png" or "jpg"
    """
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        logger.debug(f"Unrecognised image data ({len(data)} bytes), using .{default}")
        return default
    if not fmt:
        return default
    return _FORMAT_EXTENSIONS.get(fmt, fmt.lower())


class AssetStore:
    """
    In-memory registry of session image bytes.

    Thread-safe: the serial queue's worker registers imported images while
    the editing thread may read others.

    Example:
        >>> assets = AssetStore()
        >>> handle = assets.register(png_bytes)
        >>> handle.startswith("blob:")
        True
        >>> assets.read(handle) == png_bytes
        True
    """

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def register(self, data: bytes) -> str:
        """
        Store image bytes and return a fresh ephemeral handle.

        Raises:
            TypeError: If ``data`` is not bytes-like
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"asset data must be bytes, got {type(data).__name__}")
        handle = f"{HANDLE_PREFIX}{uuid.uuid4()}"
        with self._lock:
            self._data[handle] = bytes(data)
        return handle

    def register_file(self, path: Path) -> str:
        """
        Read an image file and register its bytes.

        Raises:
            AssetResolutionError: If the file cannot be read
        """
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise AssetResolutionError(f"Cannot read image {path}: {e}", ref=str(path)) from e
        return self.register(data)

    def read(self, handle: str) -> bytes:
        """
        Resolve a handle to its bytes.

        Raises:
            AssetResolutionError: If the handle is unknown or released
        """
        with self._lock:
            data = self._data.get(handle)
        if data is None:
            raise AssetResolutionError(f"Unknown asset handle: {handle!r}", ref=handle)
        return data

    def release(self, handle: Optional[str]) -> None:
        """Forget a handle. Unknown handles are ignored."""
        if not is_ephemeral(handle):
            return
        with self._lock:
            self._data.pop(handle, None)

    def handles(self) -> list[str]:
        """Snapshot of the currently registered handles."""
        with self._lock:
            return list(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
