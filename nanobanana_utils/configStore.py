#!/usr/bin/env python3
"""
Configuration management for the Nano Banana MCP server.

Resolves the Gemini API key from the environment or the persisted config file,
keeps the Gemini client built from it and saves keys configured through the
configure_credential tool.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, NamedTuple, Optional

from nanobanana_utils.errors import FileAccessError, InvalidInputError, PreconditionFailedError
from nanobanana_utils.geminiUtils import DEFAULT_API_BASE_URL, DEFAULT_TIMEOUT, GeminiClient
from nanobanana_utils.loggingConfig import getLogger

logger = getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"
IMAGE_MODEL_ENV = "GEMINI_IMAGE_MODEL"
API_BASE_URL_ENV = "GEMINI_API_BASE_URL"
REQUEST_TIMEOUT_ENV = "GEMINI_REQUEST_TIMEOUT"
CONFIG_FILE_NAME = ".nano-banana-config.json"

SOURCE_ENVIRONMENT = "environment"
SOURCE_CONFIG_FILE = "persisted-file"
SOURCE_NOT_CONFIGURED = "unset"


@dataclass
class ServerSettings:
    """Settings read from the environment when the server starts."""

    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = DEFAULT_TIMEOUT
    preferred_model: Optional[str] = None
    config_path: str = field(default_factory=lambda: os.path.join(os.getcwd(), CONFIG_FILE_NAME))

    @classmethod
    def from_env(cls) -> "ServerSettings":
        """
        Create settings from environment variables.

        Environment variables:
            GEMINI_IMAGE_MODEL: Preferred image model, tried before the built-in ones
            GEMINI_API_BASE_URL: Override for the Gemini API root
            GEMINI_REQUEST_TIMEOUT: Request timeout in seconds (default 300)
        """
        timeout = os.getenv(REQUEST_TIMEOUT_ENV, "").strip()
        return cls(
            api_base_url=os.getenv(API_BASE_URL_ENV, "").strip() or DEFAULT_API_BASE_URL,
            request_timeout=float(timeout) if timeout else DEFAULT_TIMEOUT,
            preferred_model=os.getenv(IMAGE_MODEL_ENV, "").strip() or None,
        )


class CredentialLookup(NamedTuple):
    """Outcome of reading the API key from one source: a key or the reason there is none."""

    apiKey: Optional[str]
    problem: str = ""


def validateApiKey(apiKey: Any) -> str:
    """
    Validate a Gemini API key. Accepted keys are returned exactly as given.

    Raises:
        InvalidInputError: If the key is not a string or is blank
    """
    if not isinstance(apiKey, str) or not apiKey.strip():
        raise InvalidInputError("Invalid API key: Gemini API key is required", field="apiKey")
    return apiKey


def readEnvironmentKey(environ: Optional[Dict[str, str]] = None) -> CredentialLookup:
    environ = os.environ if environ is None else environ
    raw = environ.get(API_KEY_ENV)
    if not raw:
        return CredentialLookup(None, f"{API_KEY_ENV} is not set")
    try:
        return CredentialLookup(validateApiKey(raw))
    except InvalidInputError as e:
        return CredentialLookup(None, f"{API_KEY_ENV}: {e}")


def readConfigFile(configPath: str) -> CredentialLookup:
    if not os.path.exists(configPath):
        return CredentialLookup(None, f"no config file at {configPath}")
    try:
        with open(configPath, "r", encoding="utf-8") as file:
            config = json.load(file)
    except (OSError, ValueError) as e:
        return CredentialLookup(None, f"could not read {configPath}: {e}")
    if not isinstance(config, dict):
        return CredentialLookup(None, f"{configPath} does not hold a JSON object")
    try:
        return CredentialLookup(validateApiKey(config.get("geminiApiKey")))
    except InvalidInputError as e:
        return CredentialLookup(None, f"{configPath}: {e}")


class CredentialStore:
    """Owns the Gemini API key, the client built from it and where the key came from."""

    def __init__(
        self,
        settings: Optional[ServerSettings] = None,
        clientFactory: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.settings = settings or ServerSettings()
        self._clientFactory = clientFactory or self._createClient
        self.apiKey: Optional[str] = None
        self.client: Optional[Any] = None
        self.source = SOURCE_NOT_CONFIGURED

    def _createClient(self, apiKey: str) -> GeminiClient:
        return GeminiClient(apiKey, apiBaseUrl=self.settings.api_base_url, timeout=self.settings.request_timeout)

    def _apply(self, apiKey: str, source: str) -> None:
        self.apiKey = apiKey
        self.client = self._clientFactory(apiKey)
        self.source = source

    def configure(self, apiKey: Any) -> str:
        """
        Replace the current key and persist it to the config file.

        Raises:
            InvalidInputError: If the key is blank
            FileAccessError: If the config file cannot be written
        """
        apiKey = validateApiKey(apiKey)
        self._apply(apiKey, SOURCE_CONFIG_FILE)
        self.save()
        logger.info("Gemini API key configured and saved to %s", self.settings.config_path)
        return "configured"

    def save(self) -> None:
        if not self.apiKey:
            return
        configPath = self.settings.config_path
        try:
            with open(configPath, "w", encoding="utf-8") as file:
                json.dump({"geminiApiKey": self.apiKey}, file, indent=2)
        except OSError as e:
            raise FileAccessError(f"Failed to save config file {configPath}: {e.strerror or e}", path=configPath) from e

    def loadOnStartup(self, environ: Optional[Dict[str, str]] = None) -> str:
        """
        Load the key from GEMINI_API_KEY, falling back to the config file.

        An invalid environment value or an unreadable config file is logged and
        never raised. Returns the resulting source tag.
        """
        environ = os.environ if environ is None else environ
        fromEnv = readEnvironmentKey(environ)
        if fromEnv.apiKey:
            self._apply(fromEnv.apiKey, SOURCE_ENVIRONMENT)
            logger.info("Gemini API key loaded from %s", API_KEY_ENV)
            return self.source
        if environ.get(API_KEY_ENV):
            logger.warning("Ignoring invalid key (%s), falling back to config file", fromEnv.problem)
        else:
            logger.debug(fromEnv.problem)

        fromFile = readConfigFile(self.settings.config_path)
        if fromFile.apiKey:
            self._apply(fromFile.apiKey, SOURCE_CONFIG_FILE)
            logger.info("Gemini API key loaded from %s", self.settings.config_path)
            return self.source

        if os.path.exists(self.settings.config_path):
            logger.warning("Ignoring config file, %s", fromFile.problem)
        else:
            logger.debug(fromFile.problem)
        self.source = SOURCE_NOT_CONFIGURED
        logger.info("Gemini API key not configured. Use configure_credential to set one.")
        return self.source

    def isConfigured(self) -> bool:
        return self.apiKey is not None and self.client is not None

    def status(self) -> Dict[str, Any]:
        return {"configured": self.isConfigured(), "source": self.source}

    def requireClient(self) -> Any:
        """
        Return the Gemini client.

        Raises:
            PreconditionFailedError: If no API key has been configured
        """
        if not self.isConfigured():
            raise PreconditionFailedError("Gemini API token not configured. Use configure_credential first.")
        return self.client
