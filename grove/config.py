"""Load runtime settings from the environment."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from typing import Mapping

from .branches import is_valid_branch_name
from .exceptions import ConfigError

DEFAULT_GIT_BINARY = "git"
DEFAULT_REMOTE = "origin"


@dataclass(frozen=True)
class Settings:
    git_binary: str = DEFAULT_GIT_BINARY
    remote: str = DEFAULT_REMOTE


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(git_binary=resolve_git_binary(env), remote=resolve_remote(env))


def resolve_git_binary(env: Mapping[str, str]) -> str:
    binary = _optional_env(env, "GROVE_GIT") or DEFAULT_GIT_BINARY
    resolved = shutil.which(binary)
    if not resolved:
        raise ConfigError(
            f"git executable not found: {binary}. Install git or point GROVE_GIT at it, "
            "e.g. export GROVE_GIT=/usr/bin/git"
        )
    return resolved


def resolve_remote(env: Mapping[str, str]) -> str:
    remote = _optional_env(env, "GROVE_REMOTE") or DEFAULT_REMOTE
    if not is_valid_branch_name(remote) or "/" in remote:
        raise ConfigError(f"Invalid remote name in GROVE_REMOTE: {remote!r}")
    return remote


def _optional_env(env: Mapping[str, str], var: str) -> str | None:
    raw = env.get(var)
    if raw is None:
        return None
    return raw.strip() or None


__all__ = ["Settings", "load_settings", "resolve_git_binary", "resolve_remote"]
