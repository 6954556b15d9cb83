#!/usr/bin/env python3
"""
Gemini API utilities.
Provides the generateContent HTTP client, the image model candidate list and
model fallback when a candidate is not available to the API key.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import requests

from nanobanana_utils.errors import ModelUnavailableError
from nanobanana_utils.loggingConfig import getLogger

logger = getLogger(__name__)

# ============================================================================
# CONSTANTS AND CONFIGURATION
# ============================================================================

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 300

DEFAULT_IMAGE_MODEL = "gemini-2.0-flash-preview-image-generation"
LEGACY_IMAGE_MODEL = "gemini-2.5-flash-image-preview"

# Substrings Gemini puts in the error text when a model id is unknown or cannot
# serve generateContent. The API has no structured "unsupported model" code, so
# this is a loose match to revisit if one appears.
MODEL_NOT_AVAILABLE_SIGNALS = (
    "NOT_FOUND",
    "is not found",
    "not supported for generateContent",
)

_LOG_TRUNCATE_THRESHOLD = 200

Contents = Union[str, List[Dict[str, Any]]]


class GeminiAPIError(Exception):
    """Raised when the Gemini API answers with a non-success status."""

    def __init__(self, message: str, status_code: int = 0, status: str = "", response: str = "") -> None:
        self.status_code = status_code
        self.status = status
        self.response = response
        super().__init__(message)


# ============================================================================
# CORE API FUNCTIONS
# ============================================================================

def normalizeContents(contents: Contents) -> List[Dict[str, Any]]:
    """
    Turn a bare prompt into the generateContent `contents` array.

    Example:
        >>> normalizeContents("A cat")
        [{'parts': [{'text': 'A cat'}]}]
    """
    if isinstance(contents, str):
        return [{"parts": [{"text": contents}]}]
    return list(contents)


def truncateImageData(obj: Any, parentKey: Optional[str] = None) -> Any:
    """Replace long base64 strings with a placeholder so payloads are safe to log."""
    if isinstance(obj, dict):
        return {k: truncateImageData(v, k) for k, v in obj.items()}
    if isinstance(obj, list):
        return [truncateImageData(v) for v in obj]
    if isinstance(obj, str) and parentKey == "data" and len(obj) >= _LOG_TRUNCATE_THRESHOLD:
        return f"<base64, {len(obj)} chars>"
    return obj


def parseErrorResponse(response: requests.Response) -> GeminiAPIError:
    """Build a GeminiAPIError keeping the HTTP code, API status and API message."""
    status = ""
    message = response.text
    try:
        body = response.json()
        error = body.get("error", {}) if isinstance(body, dict) else {}
        status = error.get("status", "") or ""
        message = error.get("message", "") or message
    except ValueError:
        pass

    text = f"Gemini API error {response.status_code}"
    if status:
        text += f" {status}"
    text += f": {message}"
    return GeminiAPIError(text, status_code=response.status_code, status=status, response=response.text)


def generateContentRequest(
    apiKey: str,
    model: str,
    contents: Contents,
    apiBaseUrl: str = DEFAULT_API_BASE_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> Dict[str, Any]:
    """
    Call models/{model}:generateContent on the Gemini API.

    Args:
        apiKey: Gemini API key
        model: Model identifier, e.g. "gemini-2.0-flash-preview-image-generation"
        contents: Bare prompt string or a list of content entries with parts
        apiBaseUrl: API root including the version segment
        timeout: Request timeout in seconds

    Returns:
        Decoded JSON response

    Raises:
        GeminiAPIError: If the API returns a non-2xx status or a body that is not JSON
    """
    url = f"{apiBaseUrl.rstrip('/')}/models/{model}:generateContent"
    headers = {
        "x-goog-api-key": apiKey,
        "Content-Type": "application/json",
    }
    payload = {
        "contents": normalizeContents(contents),
        "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
    }

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("generateContent model=%s payload=%s", model, json.dumps(truncateImageData(payload)))

    response = requests.post(url, headers=headers, json=payload, timeout=timeout)
    logger.debug("generateContent model=%s status=%s", model, response.status_code)

    if not response.ok:
        raise parseErrorResponse(response)

    try:
        return response.json()
    except ValueError as e:
        raise GeminiAPIError(
            f"Failed to parse Gemini response as JSON: {e}",
            status_code=response.status_code,
            response=response.text,
        ) from e


class GeminiClient:
    """Holds the API key and endpoint settings for generateContent calls."""

    def __init__(self, apiKey: str, apiBaseUrl: str = DEFAULT_API_BASE_URL, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.apiKey = apiKey
        self.apiBaseUrl = apiBaseUrl
        self.timeout = timeout

    def generateContent(self, model: str, contents: Contents) -> Dict[str, Any]:
        return generateContentRequest(self.apiKey, model, contents, apiBaseUrl=self.apiBaseUrl, timeout=self.timeout)

    def __repr__(self) -> str:
        return f"GeminiClient(apiBaseUrl={self.apiBaseUrl!r}, timeout={self.timeout!r})"


# ============================================================================
# MODEL SELECTION FUNCTIONS
# ============================================================================

def getImageModelCandidates(configuredModel: Optional[str] = None) -> List[str]:
    """
    Get the ordered, de-duplicated list of image models to try.

    Example:
        >>> getImageModelCandidates("gemini-2.5-flash-image-preview")
        ['gemini-2.5-flash-image-preview', 'gemini-2.0-flash-preview-image-generation']
    """
    candidates = [(configuredModel or "").strip(), DEFAULT_IMAGE_MODEL, LEGACY_IMAGE_MODEL]
    models: List[str] = []
    for model in candidates:
        if model and model not in models:
            models.append(model)
    return models


def isModelNotAvailableError(error: BaseException) -> bool:
    """Check whether an error means the model is missing or cannot generate content."""
    message = str(error)
    return any(signal in message for signal in MODEL_NOT_AVAILABLE_SIGNALS)


def generateContentWithModelFallback(
    client: Any,
    contents: Contents,
    models: Sequence[str],
    isRecoverable: Callable[[BaseException], bool] = isModelNotAvailableError,
) -> Tuple[Dict[str, Any], str]:
    """
    Try each model in order until one serves the request.

    A model that is reported as unavailable moves on to the next candidate;
    any other error is raised immediately without trying the remaining models.

    Returns:
        Tuple of (response, model that served it)

    Raises:
        ModelUnavailableError: If every candidate was unavailable
    """
    lastError: Optional[BaseException] = None

    for model in models:
        try:
            response = client.generateContent(model, contents)
        except Exception as e:
            if not isRecoverable(e):
                raise
            logger.warning("Model %s is not available, trying next candidate: %s", model, e)
            lastError = e
            continue
        logger.info("Gemini model %s served the request", model)
        return response, model

    details = str(lastError) if lastError is not None else "no candidate models configured"
    raise ModelUnavailableError(
        f"No compatible Gemini image model found. Tried: {', '.join(models)}. Last error: {details}",
        tried=models,
    )
