"""
Configuration management for chunk-scribe.

This module handles environment variables, API keys, model and tool settings
using python-dotenv for explicit, project-scoped .env loading. No implicit loading occurs at import time.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from openai import OpenAI

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


@lru_cache(maxsize=32)
def load_config(env_path: Optional[str] = None, override: bool = False) -> None:
    """Explicitly load environment variables from the given .env file path.

    Notes:
    - This function does NOT perform implicit loading when env_path is None.
    - Callers should pass a path resolved via load_project_env().
    """
    if env_path:
        load_dotenv(dotenv_path=env_path, override=override)


class Config:
    """Configuration settings for chunk-scribe, read lazily from the environment."""

    @property
    def openai_api_key(self) -> str:
        """Get OpenAI API key from environment."""
        key = os.getenv("OPENAI_API_KEY")
        if not key:
            raise ConfigError("OPENAI_API_KEY not found in environment. Please set it in your environment or .env file.")
        return key

    @property
    def asr_model(self) -> str:
        """Get the model name for speech-to-text (default: whisper-1)."""
        return os.getenv("ASR_MODEL", "whisper-1")

    @property
    def label_model(self) -> str:
        """Get the chat model used for speaker labeling (default: gpt-4o)."""
        return os.getenv("LABEL_MODEL", "gpt-4o")

    @property
    def is_reasoning_model(self) -> bool:
        """Check if the labeling model is a reasoning model (default: False)."""
        value = os.getenv("IS_REASONING_MODEL", "false").lower()
        return value in ("true", "1", "yes", "on")

    @property
    def model_temperature(self) -> float:
        """Get labeling temperature (default: 0.2, valid range 0.0-2.0)."""
        try:
            temp = float(os.getenv("MODEL_TEMPERATURE", "0.2"))
        except (ValueError, TypeError):
            logger.warning("Invalid MODEL_TEMPERATURE format. Using 0.2 as default.")
            return 0.2
        if not (0.0 <= temp <= 2.0):
            logger.warning(f"Invalid MODEL_TEMPERATURE value: {temp}. Using 0.2 as default.")
            return 0.2
        return temp

    @property
    def openai_timeout(self) -> int:
        """Get OpenAI API timeout in seconds (default: 120)."""
        return int(os.getenv("OPENAI_TIMEOUT", "120"))

    @property
    def max_retries(self) -> int:
        """Get maximum number of retries for API calls (default: 2)."""
        return int(os.getenv("MAX_RETRIES", "2"))

    @property
    def ffmpeg_timeout(self) -> int:
        """Get the timeout applied to each ffmpeg/ffprobe invocation (default: 600)."""
        return int(os.getenv("FFMPEG_TIMEOUT", "600"))

    @property
    def speakers(self) -> List[str]:
        """Get the known speaker names from LABEL_SPEAKERS (comma-separated)."""
        raw = os.getenv("LABEL_SPEAKERS", "Speaker")
        names = [name.strip() for name in raw.split(",") if name.strip()]
        return names or ["Speaker"]


# Global config instance
config = Config()

# --- Project-scoped environment helpers ---

METADATA_DIRNAME = ".chunk_scribe"
DEFAULT_ENV_FILENAME = os.getenv("CS_ENV_FILENAME", ".env")
ENV_FILE_ENV_VAR = "CS_ENV_FILE"


def get_project_env_path(project_root: Optional[str] = None, filename: str = DEFAULT_ENV_FILENAME) -> Path:
    """Compute the path to the project-scoped environment file inside .chunk_scribe."""
    root = Path(project_root) if project_root else Path.cwd()
    return root / METADATA_DIRNAME / filename


def load_project_env(project_root: Optional[str] = None, filename: str = DEFAULT_ENV_FILENAME, override: bool = False) -> Optional[str]:
    """
    Load a project-scoped environment file, if available.

    Load order (first match wins):
    1) Explicit env file path via CS_ENV_FILE
    2) <project_root>/.chunk_scribe/<filename> (default: .env)

    Returns the path loaded, or None if nothing was loaded.
    """
    explicit = os.getenv(ENV_FILE_ENV_VAR)
    if explicit:
        if not Path(explicit).is_file():
            raise ConfigError(f"{ENV_FILE_ENV_VAR} points to a missing file: {explicit}")
        load_config(explicit, override=override)
        return explicit

    env_path = get_project_env_path(project_root, filename)
    if env_path.is_file():
        load_config(str(env_path), override=override)
        return str(env_path)

    return None


def build_client(cfg: Optional[Config] = None) -> OpenAI:
    """
    Build an OpenAI client with timeout and retry settings.

    The client is created once per run and handed to the transcription client
    and the speaker labeler explicitly.

    Raises:
        ConfigError: If the API key is not configured
    """
    cfg = cfg or config
    api_key = cfg.openai_api_key
    try:
        return OpenAI(
            api_key=api_key,
            timeout=cfg.openai_timeout,
            max_retries=cfg.max_retries,
        )
    except Exception as e:
        raise ConfigError(f"Failed to create OpenAI client: {e}") from e
