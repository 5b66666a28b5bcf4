"""Derive organization and repository names from remote URLs."""

from pathlib import Path
from urllib.parse import urlsplit

from .models import RepoIdentity

VCS_SUFFIX = ".git"

# Hosts whose URL path is <organization>/<repository>
GIT_SOURCE_HOSTS = ("github.com", "gitlab.com", "bitbucket.org")

ROUTING_PREFIXES = ("/r/", "/gerrit/")


class MalformedURLError(ValueError):
    """Raised when a URL cannot be decomposed into organization and repository."""


def strip_vcs_suffix(url: str) -> str:
    """Remove a trailing ``.git`` (case-sensitive)."""
    if url.endswith(VCS_SUFFIX):
        return url[: -len(VCS_SUFFIX)]
    return url


def sanitize_path(path: str) -> str:
    """Drop one known routing prefix, then any leading slashes."""
    for prefix in ROUTING_PREFIXES:
        if path.startswith(prefix):
            path = path.replace(prefix, "", 1)
            break
    return path.lstrip("/")


def is_git_source(host: str) -> bool:
    return any(domain in host for domain in GIT_SOURCE_HOSTS)


def build_org_name(value: str, git_source: bool) -> str:
    """Organization from a URL path (git-source style) or host (generic style).

    Generic hosts follow the reversed-domain convention, so
    ``foo.example.org`` yields ``example``.
    """
    sanitized = sanitize_path(value)
    if not git_source:
        labels = sanitized.split(".")
        if len(labels) < 2:
            raise MalformedURLError(f"cannot derive organization from host {value!r}")
        return labels[1]
    return sanitized.split("/")[0]


def build_repo_name(path: str, org_name: str, follow_hierarchy: bool = False) -> str:
    """Repository name from the URL path.

    Without hierarchy mode only the first ``/`` and first ``_`` become ``-``
    and only the first ``/.`` and first ``.`` are dropped; later occurrences
    are kept as they are.
    """
    sanitized = sanitize_path(path)
    if org_name in sanitized:
        sanitized = sanitized.replace(f"{org_name}/", "", 1)
    if not follow_hierarchy:
        sanitized = sanitized.replace("/", "-", 1)
        sanitized = sanitized.replace("_", "-", 1)
        sanitized = sanitized.replace("/.", "", 1)
        sanitized = sanitized.replace(".", "", 1)
    return sanitized


def _split_host(netloc: str) -> str:
    # keep the port, drop any user@ credentials
    return netloc.rpartition("@")[2]


def resolve_identity(url: str, follow_hierarchy: bool = False) -> RepoIdentity:
    """Resolve a remote URL into a :class:`RepoIdentity`.

    Raises:
        MalformedURLError: if the URL has no usable host or path.
    """
    processed = strip_vcs_suffix(url)
    try:
        parts = urlsplit(processed)
    except ValueError as e:
        raise MalformedURLError(f"cannot parse URL {url!r}: {e}") from e

    host = _split_host(parts.netloc)
    if not host:
        raise MalformedURLError(f"URL {url!r} has no host")
    if any(segment in (".", "..") for segment in sanitize_path(parts.path).split("/")):
        raise MalformedURLError(f"URL {url!r} has relative path segments")

    if is_git_source(host):
        organization = build_org_name(parts.path, git_source=True)
    else:
        organization = build_org_name(host, git_source=False)
    if not organization:
        raise MalformedURLError(f"cannot derive organization from {url!r}")

    repository = build_repo_name(parts.path, organization, follow_hierarchy)
    if not repository:
        raise MalformedURLError(f"cannot derive repository name from {url!r}")

    return RepoIdentity(url=processed, organization=organization, repository=repository)


def working_copy_path(base_path: Path, identity: RepoIdentity, follow_hierarchy: bool = False) -> Path:
    """Local clone location: nested by organization or flattened into one name.

    Raises:
        MalformedURLError: if the location would fall outside ``base_path``.
    """
    base = Path(base_path)
    if follow_hierarchy:
        path = base / identity.organization / identity.repository
    else:
        path = base / f"{identity.organization}-{identity.repository}"

    root = base.resolve()
    resolved = path.resolve()
    if resolved == root or not resolved.is_relative_to(root):
        raise MalformedURLError(f"working copy {path} is outside {base}")
    return path
