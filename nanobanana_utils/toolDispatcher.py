#!/usr/bin/env python3
"""
Tool dispatch for the Nano Banana MCP server.
Maps tool names to handlers, checks their arguments, runs one call at a time and
turns unexpected failures into InternalToolError.
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

from nanobanana_utils.configStore import CredentialStore, ServerSettings
from nanobanana_utils.errors import InternalToolError, InvalidInputError, MethodNotFoundError, NanoBananaError
from nanobanana_utils.imageGeneration import ImageGenerator
from nanobanana_utils.imageUtils import getImagesDirectory
from nanobanana_utils.loggingConfig import getLogger
from nanobanana_utils.sessionState import SessionState

logger = getLogger(__name__)

REFERENCE_IMAGES_SCHEMA = {
    "type": "array",
    "items": {"type": "string"},
    "description": "Optional array of file paths to additional reference images",
}

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "configure_credential",
        "description": "Configure your Gemini API token for nano-banana image generation",
        "inputSchema": {
            "type": "object",
            "properties": {
                "apiKey": {"type": "string", "description": "Your Gemini API key from Google AI Studio"},
            },
            "required": ["apiKey"],
        },
    },
    {
        "name": "generate_image",
        "description": "Generate a NEW image from text prompt. Returns only saved file path.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "prompt": {
                    "type": "string",
                    "description": "Text prompt describing the NEW image to create from scratch",
                },
            },
            "required": ["prompt"],
        },
    },
    {
        "name": "edit_image",
        "description": "Edit a SPECIFIC existing image file and return only saved file path.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "imagePath": {"type": "string", "description": "Full file path to the main image file to edit"},
                "prompt": {
                    "type": "string",
                    "description": "Text describing the modifications to make to the existing image",
                },
                "referenceImages": REFERENCE_IMAGES_SCHEMA,
            },
            "required": ["imagePath", "prompt"],
        },
    },
    {
        "name": "continue_editing",
        "description": "Continue editing the LAST image from this session and return only saved file path.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "prompt": {"type": "string", "description": "Text describing modifications to make to the last image"},
                "referenceImages": REFERENCE_IMAGES_SCHEMA,
            },
            "required": ["prompt"],
        },
    },
    {
        "name": "get_last_image_info",
        "description": "Get information about the last generated/edited image in this session",
        "inputSchema": {"type": "object", "properties": {}, "additionalProperties": False},
    },
    {
        "name": "get_configuration_status",
        "description": "Check if Gemini API token is configured",
        "inputSchema": {"type": "object", "properties": {}, "additionalProperties": False},
    },
]


def requireString(arguments: Dict[str, Any], name: str) -> str:
    value = arguments.get(name)
    if not isinstance(value, str):
        raise InvalidInputError(f"{name} is required and must be a string", field=name)
    return value


def optionalStringList(arguments: Dict[str, Any], name: str) -> List[str]:
    """Read an optional list of paths, also accepting a JSON array string or a single path."""
    value = arguments.get(name)
    if value is None:
        return []
    if isinstance(value, str):
        if value.startswith("[") and value.endswith("]"):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                return [value]
        else:
            return [value]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InvalidInputError(f"{name} must be an array of file paths", field=name)
    return value


class ToolDispatcher:
    """The server's single service object: credential store, session and generator."""

    def __init__(self, credentials: CredentialStore, session: SessionState, generator: ImageGenerator) -> None:
        self.credentials = credentials
        self.session = session
        self.generator = generator
        self._lock = asyncio.Lock()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], str]] = {
            "configure_credential": self._configureCredential,
            "generate_image": self._generateImage,
            "edit_image": self._editImage,
            "continue_editing": self._continueEditing,
            "get_last_image_info": self._getLastImageInfo,
            "get_configuration_status": self._getConfigurationStatus,
        }

    @property
    def toolNames(self) -> List[str]:
        return list(self._handlers)

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """
        Run the named tool and return its text result.

        Raises:
            MethodNotFoundError: If the tool name is unknown
            NanoBananaError: Recognized tool failures, passed through unchanged
            InternalToolError: Any other exception raised by the tool
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise MethodNotFoundError(f"Unknown tool: {name}")

        async with self._lock:
            logger.debug("Calling tool %s", name)
            try:
                return await asyncio.to_thread(handler, dict(arguments or {}))
            except NanoBananaError as e:
                logger.warning("Tool %s failed (%s): %s", name, e.kind, e)
                raise
            except Exception as e:
                logger.exception("Tool %s raised an unexpected error", name)
                raise InternalToolError(f"Tool execution failed: {e}") from e

    def _configureCredential(self, arguments: Dict[str, Any]) -> str:
        return self.credentials.configure(arguments.get("apiKey"))

    def _generateImage(self, arguments: Dict[str, Any]) -> str:
        return self.generator.generateImage(requireString(arguments, "prompt"))

    def _editImage(self, arguments: Dict[str, Any]) -> str:
        return self.generator.editImage(
            requireString(arguments, "imagePath"),
            requireString(arguments, "prompt"),
            optionalStringList(arguments, "referenceImages"),
        )

    def _continueEditing(self, arguments: Dict[str, Any]) -> str:
        return self.generator.continueEditing(
            requireString(arguments, "prompt"),
            optionalStringList(arguments, "referenceImages"),
        )

    def _getLastImageInfo(self, arguments: Dict[str, Any]) -> str:
        return self.session.lastImageInfo()

    def _getConfigurationStatus(self, arguments: Dict[str, Any]) -> str:
        return json.dumps(self.credentials.status())


def createDispatcher(
    settings: Optional[ServerSettings] = None,
    environ: Optional[Dict[str, str]] = None,
    clientFactory: Optional[Callable[[str], Any]] = None,
    imagesDirectory: Callable[[], str] = getImagesDirectory,
) -> ToolDispatcher:
    """Build the dispatcher and load the API key from the environment or config file."""
    credentials = CredentialStore(settings or ServerSettings.from_env(), clientFactory=clientFactory)
    credentials.loadOnStartup(environ)
    session = SessionState()
    generator = ImageGenerator(credentials, session, imagesDirectory=imagesDirectory)
    return ToolDispatcher(credentials, session, generator)
