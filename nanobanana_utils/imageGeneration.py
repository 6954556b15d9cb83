#!/usr/bin/env python3
"""
Image generation and editing flows.
Builds Gemini requests from prompts and image files, runs them through model
fallback and saves whatever images come back.
"""

from typing import Any, Callable, Dict, List, Optional

from nanobanana_utils.configStore import CredentialStore
from nanobanana_utils.errors import FileAccessError, GenerationFailedError
from nanobanana_utils.geminiUtils import Contents, generateContentWithModelFallback, getImageModelCandidates
from nanobanana_utils.imageUtils import (
    ensureImagesDirectory,
    extractImagePayloads,
    getImagesDirectory,
    loadImage,
    toInlinePart,
    writeImageFile,
)
from nanobanana_utils.loggingConfig import getLogger, logPrompts
from nanobanana_utils.sessionState import SessionState

logger = getLogger(__name__)

GENERATED_PREFIX = "generated"
EDITED_PREFIX = "edited"


class ImageGenerator:
    """Runs generate, edit and continue-editing requests for one session."""

    def __init__(
        self,
        credentials: CredentialStore,
        session: SessionState,
        imagesDirectory: Callable[[], str] = getImagesDirectory,
    ) -> None:
        self.credentials = credentials
        self.session = session
        self.imagesDirectory = imagesDirectory

    def _candidateModels(self) -> List[str]:
        return getImageModelCandidates(self.credentials.settings.preferred_model)

    def _run(self, client: Any, contents: Contents, prefix: str) -> List[str]:
        response, model = generateContentWithModelFallback(client, contents, self._candidateModels())

        imagesDir = ensureImagesDirectory(self.imagesDirectory())
        saved: List[str] = []
        for data in extractImagePayloads(response):
            filePath = writeImageFile(data, imagesDir, prefix)
            self.session.record(filePath)
            saved.append(filePath)

        logger.info("Saved %d %s image(s) from %s", len(saved), prefix, model)
        return saved

    def _edit(self, client: Any, imagePath: str, prompt: str, referenceImages: Optional[List[str]]) -> str:
        if logPrompts():
            logger.info("Edit prompt for %s: %s", imagePath, prompt)

        parts: List[Dict[str, Any]] = [toInlinePart(loadImage(imagePath))]
        for refPath in referenceImages or []:
            try:
                parts.append(toInlinePart(loadImage(refPath)))
            except FileAccessError as e:
                logger.warning("Skipping reference image: %s", e)
        parts.append({"text": prompt})

        saved = self._run(client, [{"parts": parts}], EDITED_PREFIX)
        if not saved:
            raise GenerationFailedError("No edited image data was returned by Gemini.")
        return saved[0]

    def generateImage(self, prompt: str) -> str:
        """Generate a new image from a prompt and return the first saved path."""
        client = self.credentials.requireClient()
        if logPrompts():
            logger.info("Generate prompt: %s", prompt)

        saved = self._run(client, prompt, GENERATED_PREFIX)
        if not saved:
            raise GenerationFailedError("No image data was returned by Gemini.")
        return saved[0]

    def editImage(self, imagePath: str, prompt: str, referenceImages: Optional[List[str]] = None) -> str:
        """
        Edit an existing image, optionally guided by reference images.

        The main image must be readable; reference images that cannot be read
        are skipped.

        Raises:
            PreconditionFailedError: If no API key is configured
            FileAccessError: If the main image cannot be read
            GenerationFailedError: If Gemini returns no image
        """
        client = self.credentials.requireClient()
        return self._edit(client, imagePath, prompt, referenceImages)

    def continueEditing(self, prompt: str, referenceImages: Optional[List[str]] = None) -> str:
        """Edit the last image saved in this session."""
        client = self.credentials.requireClient()
        lastImagePath = self.session.requireLastImage()
        return self._edit(client, lastImagePath, prompt, referenceImages)
