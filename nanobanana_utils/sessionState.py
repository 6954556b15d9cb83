#!/usr/bin/env python3
"""
Session state: remembers the last image saved in this process so edits can be chained.
"""

import json
import os
from datetime import datetime, timezone
from typing import Optional

from nanobanana_utils.errors import PreconditionFailedError
from nanobanana_utils.imageUtils import formatIsoTimestamp


class SessionState:
    """Single-slot record of the most recently saved image."""

    def __init__(self) -> None:
        self.lastImagePath: Optional[str] = None

    def record(self, imagePath: str) -> None:
        self.lastImagePath = imagePath

    def requireLastImage(self) -> str:
        """
        Return the last image path if the file is still on disk.

        Raises:
            PreconditionFailedError: If nothing was saved yet or the file has been removed
        """
        if not self.lastImagePath:
            raise PreconditionFailedError("No previous image found. Please generate or edit an image first.")
        if not os.path.exists(self.lastImagePath):
            raise PreconditionFailedError(
                f"Last image file not found at: {self.lastImagePath}. Please generate a new image first."
            )
        return self.lastImagePath

    def lastImageInfo(self) -> str:
        """
        Describe the last image: "none", its size and mtime as JSON, or
        {"path": ..., "exists": false} if it was deleted.
        """
        if not self.lastImagePath:
            return "none"
        try:
            stats = os.stat(self.lastImagePath)
        except OSError:
            return json.dumps({"path": self.lastImagePath, "exists": False})
        return json.dumps(
            {
                "path": self.lastImagePath,
                "sizeBytes": stats.st_size,
                "modifiedAt": formatIsoTimestamp(datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)),
            }
        )
