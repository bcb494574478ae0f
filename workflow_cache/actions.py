"""Runner I/O: action inputs, step outputs and saved state.

Inputs come from INPUT_<NAME> environment variables, outputs and state are
appended to the files named by GITHUB_OUTPUT and GITHUB_STATE, and state
saved by the restore step is read back by the save step from STATE_<NAME>.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from workflow_cache.core.config import Settings
from workflow_cache.core.logging import get_logger


logger = get_logger(__name__)


class Outputs:
    CACHE_HIT = "cache-hit"
    PRIMARY_KEY = "cache-primary-key"
    MATCHED_KEY = "cache-matched-key"


class State:
    CACHE_PRIMARY_KEY = "CACHE_KEY"
    CACHE_MATCHED_KEY = "CACHE_RESULT"


def get_input(name: str) -> str:
    """Value of an action input, stripped; empty when unset."""
    env_name = f"INPUT_{name.replace(' ', '_').upper()}"
    return os.environ.get(env_name, "").strip()


def get_input_list(name: str) -> list[str]:
    """List input, one entry per line."""
    return [line.strip() for line in get_input(name).splitlines() if line.strip()]


def get_input_bool(name: str, default: bool = False) -> bool:
    """Boolean input accepting true/True/TRUE and false/False/FALSE."""
    value = get_input(name)
    if not value:
        return default
    if value in ("true", "True", "TRUE"):
        return True
    if value in ("false", "False", "FALSE"):
        return False
    raise ValueError(f"Input {name!r} must be a boolean, got {value!r}")


def get_input_int(name: str) -> int | None:
    """Integer input, None when unset."""
    value = get_input(name)
    return int(value) if value else None


def _append_command_file(path: Path, name: str, value: str) -> None:
    with path.open("a", encoding="utf-8") as fh:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            fh.write(f"{name}={value}\n")


def set_output(settings: Settings, name: str, value: str) -> None:
    """Publish a step output."""
    if settings.github_output is not None:
        _append_command_file(settings.github_output, name, value)
    logger.debug("Output set", name=name, value=value)


def save_state(settings: Settings, name: str, value: str) -> None:
    """Keep a value for the post-job save step."""
    if settings.github_state is not None:
        _append_command_file(settings.github_state, name, value)
    logger.debug("State saved", name=name, value=value)


def get_state(name: str) -> str:
    """Value saved by an earlier step of the same action."""
    return os.environ.get(f"STATE_{name}", "")


def is_exact_key_match(key: str, cache_key: str | None) -> bool:
    """Case-insensitive comparison of the primary key with the matched key."""
    return bool(cache_key) and cache_key.casefold() == key.casefold()
