#!/usr/bin/env python3
"""
Image file helpers.
Reads images into Gemini inline parts, pulls image payloads out of responses and
writes them to the output directory under collision-resistant names.
"""

import base64
import os
import random
import string
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from nanobanana_utils.errors import FileAccessError

# ============================================================================
# CONSTANTS AND CONFIGURATION
# ============================================================================

DEFAULT_MIME_TYPE = "image/jpeg"

MIME_TYPES: Dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

IMAGES_DIR_NAME = "nano-banana-images"
LOCAL_IMAGES_DIR_NAME = "generated_imgs"
SYSTEM_DIR_PREFIXES = ("/usr/", "/opt/", "/var/")
IMAGES_DIR_MODE = 0o755

RANDOM_ID_ALPHABET = string.ascii_lowercase + string.digits
RANDOM_ID_LENGTH = 6


class ImageData(NamedTuple):
    data: bytes
    mimeType: str


# ============================================================================
# ENCODING FUNCTIONS
# ============================================================================

def getMimeType(filePath: str) -> str:
    """
    Map a file extension to its MIME type. Unknown extensions fall back to image/jpeg.

    Example:
        >>> getMimeType("photo.PNG")
        'image/png'
        >>> getMimeType("scan.tiff")
        'image/jpeg'
    """
    return MIME_TYPES.get(os.path.splitext(filePath)[1].lower(), DEFAULT_MIME_TYPE)


def loadImage(filePath: str) -> ImageData:
    """
    Read an image file from disk.

    Raises:
        FileAccessError: If the file cannot be read
    """
    try:
        with open(filePath, "rb") as file:
            data = file.read()
    except (OSError, ValueError) as e:
        # ValueError covers paths open() rejects outright, e.g. an embedded NUL byte
        raise FileAccessError(f"Failed to read image file {filePath!r}: {getattr(e, 'strerror', None) or e}", path=filePath) from e
    return ImageData(data=data, mimeType=getMimeType(filePath))


def encodeInlineData(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def decodeInlineData(data: str) -> bytes:
    return base64.b64decode(data)


def toInlinePart(image: ImageData) -> Dict[str, Any]:
    """Build a generateContent inlineData part from loaded image bytes."""
    return {
        "inlineData": {
            "mimeType": image.mimeType,
            "data": encodeInlineData(image.data),
        }
    }


def extractImagePayloads(response: Any) -> List[bytes]:
    """
    Decode every inline image in the first candidate of a generateContent response.

    Text parts are ignored. A response without candidates or parts yields an empty list.
    """
    if not isinstance(response, dict):
        return []
    candidates = response.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return []
    content = candidates[0].get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return []

    payloads: List[bytes] = []
    for part in parts:
        if not isinstance(part, dict):
            continue
        inlineData = part.get("inlineData") or {}
        data = inlineData.get("data") if isinstance(inlineData, dict) else None
        if data:
            payloads.append(decodeInlineData(data))
    return payloads


# ============================================================================
# OUTPUT FILE FUNCTIONS
# ============================================================================

def genRandId(length: int = RANDOM_ID_LENGTH) -> str:
    return "".join(random.choices(RANDOM_ID_ALPHABET, k=length))


def formatIsoTimestamp(moment: datetime) -> str:
    """Format a datetime as UTC ISO 8601 with milliseconds, e.g. 2025-01-31T09:15:02.123Z."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def buildImageFileName(prefix: str, now: Optional[datetime] = None) -> str:
    """
    Build an output filename like generated-2025-01-31T09-15-02-123Z-k3x9qa.png.

    The extension is always .png whatever the model returned.
    """
    timestamp = formatIsoTimestamp(now or datetime.now(timezone.utc)).replace(":", "-").replace(".", "-")
    return f"{prefix}-{timestamp}-{genRandId()}.png"


def writeImageFile(data: bytes, imagesDir: str, prefix: str) -> str:
    """
    Write image bytes to a new file in imagesDir and return its path.

    Raises:
        FileAccessError: If the file cannot be written
    """
    filePath = os.path.join(imagesDir, buildImageFileName(prefix))
    while os.path.exists(filePath):
        filePath = os.path.join(imagesDir, buildImageFileName(prefix))
    try:
        with open(filePath, "wb") as file:
            file.write(data)
    except OSError as e:
        raise FileAccessError(f"Failed to write image file {filePath}: {e.strerror or e}", path=filePath) from e
    return filePath


def getImagesDirectory(platform: Optional[str] = None, cwd: Optional[str] = None, home: Optional[str] = None) -> str:
    """
    Default output directory for saved images.

    - Windows: ~/Documents/nano-banana-images
    - Running from /usr, /opt or /var: ~/nano-banana-images
    - Otherwise: ./generated_imgs under the working directory
    """
    platform = platform or sys.platform
    cwd = cwd or os.getcwd()
    home = home or str(Path.home())

    if platform == "win32":
        return os.path.join(home, "Documents", IMAGES_DIR_NAME)
    if cwd.startswith(SYSTEM_DIR_PREFIXES):
        return os.path.join(home, IMAGES_DIR_NAME)
    return os.path.join(cwd, LOCAL_IMAGES_DIR_NAME)


def ensureImagesDirectory(imagesDir: str) -> str:
    """Create imagesDir (and parents) if missing."""
    try:
        Path(imagesDir).mkdir(mode=IMAGES_DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise FileAccessError(f"Failed to create images directory {imagesDir}: {e.strerror or e}", path=imagesDir) from e
    return imagesDir
