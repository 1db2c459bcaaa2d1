"""Resolve hosting-platform web URLs into clone URLs, branches and PR numbers."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import parse_qs, unquote, urlparse

from .branches import is_valid_branch_name
from .exceptions import NotPlatformURLError
from .models import PlatformURLInfo

logger = logging.getLogger(__name__)

GITHUB = "GitHub"
GITLAB = "GitLab"
BITBUCKET = "Bitbucket"
AZURE_DEVOPS = "Azure DevOps"
CODEBERG = "Codeberg"
GITEA = "Gitea"

_PLATFORM_HOSTS = {
    "github.com": GITHUB,
    "gitlab.com": GITLAB,
    "bitbucket.org": BITBUCKET,
    "dev.azure.com": AZURE_DEVOPS,
    "ssh.dev.azure.com": AZURE_DEVOPS,
    "codeberg.org": CODEBERG,
    "gitea.com": GITEA,
    "gitea.io": GITEA,
}

_GIT_SCHEMES = {"http", "https", "ssh", "git", "git+ssh", "ssh+git", "file"}
_SCHEME_RE = re.compile(r"^(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*)://(?P<rest>.+)$")
_SCP_RE = re.compile(r"^(?P<user>[\w.-]+)@(?P<host>[\w.-]+):(?P<path>(?!//).+)$")

# (repo path segments, branch, pr number)
_Parsed = tuple[list[str], Optional[str], Optional[str]]


def detect_platform(host: str | None) -> str | None:
    """Map a hostname to a supported platform name, including subdomains."""

    if not host:
        return None
    host = host.lower()
    if host in _PLATFORM_HOSTS:
        return _PLATFORM_HOSTS[host]
    for known, platform in _PLATFORM_HOSTS.items():
        if host.endswith("." + known):
            return platform
    if host.endswith(".visualstudio.com"):
        return AZURE_DEVOPS
    return None


def parse_platform_url(value: str) -> PlatformURLInfo:
    """Classify ``value`` as a hosting-platform URL and pull out its parts.

    Raises NotPlatformURLError for local paths and URL shapes we do not
    recognize; callers fall back to :func:`is_git_url` in that case.
    """

    text = (value or "").strip()
    if not text:
        raise NotPlatformURLError("empty input is not a platform URL")

    scp = _SCP_RE.match(text)
    if scp and "://" not in text:
        return _ssh_info(text, scp.group("host"))

    if "://" not in text:
        first = text.split("/", 1)[0]
        if detect_platform(first) is None:
            raise NotPlatformURLError(f"not a platform URL: {text}")
        text = f"https://{text}"

    parsed = urlparse(text)
    scheme = parsed.scheme.lower()
    if scheme in {"ssh", "git+ssh", "ssh+git"}:
        return _ssh_info(text, parsed.hostname)
    if scheme not in {"http", "https"}:
        raise NotPlatformURLError(f"unsupported scheme for platform URL: {text}")

    platform = detect_platform(parsed.hostname)
    if platform is None:
        raise NotPlatformURLError(f"unrecognized hosting platform: {parsed.hostname}")

    segments = [segment for segment in parsed.path.split("/") if segment]
    parser = _PARSERS[platform]
    repo_segments, branch, pr_number = parser(segments, parsed.query)

    repo_url = f"{parsed.scheme}://{parsed.netloc}/{'/'.join(repo_segments)}"
    if branch is not None and not is_valid_branch_name(branch):
        logger.debug("discarding invalid branch %r parsed from %s", branch, text)
        branch = None
    info = PlatformURLInfo(repo_url=repo_url, platform=platform, branch=branch, pr_number=pr_number)
    logger.debug("resolved platform URL %s -> %s", text, info)
    return info


def is_git_url(value: str, *, base: Path | None = None) -> bool:
    """Looser check: does ``value`` look like something git can clone from?

    Accepts a clone scheme prefix, the ``user@host:path`` SSH form, or a
    ``.git`` suffix (unless it names an existing local directory).
    """

    text = (value or "").strip()
    if not text:
        return False
    match = _SCHEME_RE.match(text)
    if match:
        return match.group("scheme").lower() in _GIT_SCHEMES
    if _SCP_RE.match(text):
        return True
    if text.endswith(".git"):
        candidate = Path(text).expanduser()
        if base is not None and not candidate.is_absolute():
            candidate = base / candidate
        return not candidate.is_dir()
    return False


def _ssh_info(text: str, host: str | None) -> PlatformURLInfo:
    platform = detect_platform(host)
    if platform is None:
        raise NotPlatformURLError(f"unrecognized hosting platform: {host}")
    return PlatformURLInfo(repo_url=text, platform=platform)


def _not_recognized(segments: list[str]) -> NotPlatformURLError:
    return NotPlatformURLError(f"unrecognized URL path: /{'/'.join(segments)}")


def _pr(value: str, segments: list[str]) -> str:
    if not value.isdigit():
        raise _not_recognized(segments)
    return value


def _owner_repo(segments: list[str]) -> tuple[list[str], list[str]]:
    if len(segments) < 2:
        raise _not_recognized(segments)
    return segments[:2], segments[2:]


def _parse_github(segments: list[str], query: str) -> _Parsed:
    repo, rest = _owner_repo(segments)
    if not rest:
        return repo, None, None
    keyword, tail = rest[0], rest[1:]
    if keyword == "tree" and tail:
        return repo, unquote("/".join(tail)), None
    if keyword == "blob" and tail:
        return repo, unquote(tail[0]), None
    if keyword == "pull" and tail:
        return repo, None, _pr(tail[0], segments)
    raise _not_recognized(segments)


def _parse_gitlab(segments: list[str], query: str) -> _Parsed:
    if "-" not in segments:
        if len(segments) < 2:
            raise _not_recognized(segments)
        return segments, None, None
    index = segments.index("-")
    repo, rest = segments[:index], segments[index + 1 :]
    if len(repo) < 2 or len(rest) < 2:
        raise _not_recognized(segments)
    keyword, tail = rest[0], rest[1:]
    if keyword == "tree":
        return repo, unquote("/".join(tail)), None
    if keyword == "blob":
        return repo, unquote(tail[0]), None
    if keyword == "merge_requests":
        return repo, None, _pr(tail[0], segments)
    raise _not_recognized(segments)


def _parse_bitbucket(segments: list[str], query: str) -> _Parsed:
    repo, rest = _owner_repo(segments)
    if not rest:
        return repo, None, None
    keyword, tail = rest[0], rest[1:]
    if keyword == "src" and tail:
        return repo, unquote(tail[0]), None
    if keyword == "branch" and tail:
        return repo, unquote("/".join(tail)), None
    if keyword == "pull-requests" and tail:
        return repo, None, _pr(tail[0], segments)
    raise _not_recognized(segments)


def _parse_azure(segments: list[str], query: str) -> _Parsed:
    if "_git" not in segments:
        raise _not_recognized(segments)
    index = segments.index("_git")
    if index < 1 or len(segments) < index + 2:
        raise _not_recognized(segments)
    repo, rest = segments[: index + 2], segments[index + 2 :]
    branch = None
    version = parse_qs(query).get("version", [""])[0]
    if version.startswith("GB") and len(version) > 2:
        branch = version[2:]
    if not rest:
        return repo, branch, None
    if rest[0] == "pullrequest" and len(rest) > 1:
        return repo, None, _pr(rest[1], segments)
    raise _not_recognized(segments)


def _parse_gitea(segments: list[str], query: str) -> _Parsed:
    repo, rest = _owner_repo(segments)
    if not rest:
        return repo, None, None
    keyword, tail = rest[0], rest[1:]
    if keyword == "src" and len(tail) >= 2 and tail[0] == "branch":
        return repo, unquote("/".join(tail[1:])), None
    if keyword == "pulls" and tail:
        return repo, None, _pr(tail[0], segments)
    raise _not_recognized(segments)


_PARSERS: dict[str, Callable[[list[str], str], _Parsed]] = {
    GITHUB: _parse_github,
    GITLAB: _parse_gitlab,
    BITBUCKET: _parse_bitbucket,
    AZURE_DEVOPS: _parse_azure,
    CODEBERG: _parse_gitea,
    GITEA: _parse_gitea,
}


__all__ = [
    "GITHUB",
    "GITLAB",
    "BITBUCKET",
    "AZURE_DEVOPS",
    "CODEBERG",
    "GITEA",
    "detect_platform",
    "parse_platform_url",
    "is_git_url",
]
