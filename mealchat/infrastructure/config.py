"""Configuration utilities for infrastructure layer."""

import os
from pathlib import Path
from typing import Literal, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from mealchat.domain.conversation.questions import MAX_NO_MATCH_RETRIES


def load_environment(env_file: Optional[Union[str, Path]] = None) -> bool:
    """
    Load variables from a .env file into the process environment.

    Already set variables win over the file.

    Args:
        env_file: Path of the file (defaults to .env lookup from the cwd)

    Returns:
        True if a file was found and loaded
    """
    if env_file is None:
        return load_dotenv()
    return load_dotenv(Path(env_file))


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def get_max_no_match_retries() -> int:
    """
    Get the number of no-match retries before an item is skipped.

    Returns:
        MEALCHAT_MAX_NO_MATCH_RETRIES, defaults to 2
    """
    return _get_int("MEALCHAT_MAX_NO_MATCH_RETRIES", MAX_NO_MATCH_RETRIES)


def get_candidate_limit() -> int:
    """
    Get the maximum number of candidates offered for disambiguation.

    Returns:
        MEALCHAT_CANDIDATE_LIMIT, defaults to 5
    """
    return _get_int("MEALCHAT_CANDIDATE_LIMIT", 5)


def get_language() -> str:
    """
    Get the conversation language.

    Returns:
        MEALCHAT_LANGUAGE ("fi" or "en"), defaults to "fi"
    """
    return os.getenv("MEALCHAT_LANGUAGE", "fi").strip().lower() or "fi"


def get_log_level() -> str:
    """Get the log level name (MEALCHAT_LOG_LEVEL, defaults to "INFO")."""
    return os.getenv("MEALCHAT_LOG_LEVEL", "INFO").strip().upper() or "INFO"


def get_search_cache_ttl_seconds() -> int:
    """
    Get the lifetime of cached food searches.

    Returns:
        MEALCHAT_SEARCH_CACHE_TTL_SECONDS, defaults to 86400 (24h)
    """
    return _get_int("MEALCHAT_SEARCH_CACHE_TTL_SECONDS", 86400)


class ConversationSettings(BaseModel):
    """
    Tunables of the conversation orchestrator.

    Example:
        >>> settings = ConversationSettings(max_no_match_retries=3)
        >>> settings.candidate_limit
        5
    """

    model_config = ConfigDict(frozen=True)

    max_no_match_retries: int = Field(MAX_NO_MATCH_RETRIES, ge=1)
    candidate_limit: int = Field(5, ge=2)
    language: Literal["fi", "en"] = "fi"

    @classmethod
    def from_env(cls) -> "ConversationSettings":
        """Build settings from MEALCHAT_* environment variables."""
        return cls(
            max_no_match_retries=get_max_no_match_retries(),
            candidate_limit=get_candidate_limit(),
            language=get_language(),
        )
