"""Repository references.

Operations accept a repository in several forms: an owner/name pair, a
URL (web, API or SSH), a numeric id, an ``"owner/name"`` string, or a
decoded record carrying ``full_name``. ``resolve_repository`` turns any of
them into one canonical ``ResolvedRepository`` before a request is built.
"""

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
_SSH_PATTERN = re.compile(r"^git@[^:]+:(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$")


@dataclass(frozen=True)
class RepositoryByKey:
    """Repository named by owner login and repository name."""

    owner: str
    name: str

    def __post_init__(self) -> None:
        for part in (self.owner, self.name):
            if not part or not _NAME_PATTERN.match(part):
                raise ValueError(f"Invalid repository owner or name: {part!r}")

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class RepositoryByUrl:
    """Repository named by any of its URLs."""

    url: str


@dataclass(frozen=True)
class RepositoryById:
    """Repository named by its numeric id."""

    id: int


RepositoryRef = RepositoryByKey | RepositoryByUrl | RepositoryById


@dataclass(frozen=True)
class ResolvedRepository:
    """Canonical repository identifier used to build request paths."""

    path: str
    owner: str | None = None
    name: str | None = None

    @property
    def full_name(self) -> str | None:
        if self.owner is None or self.name is None:
            return None
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name or self.path


def parse_repository_url(url: str) -> RepositoryByKey:
    """Extract owner and name from a repository URL.

    Understands ``https://github.com/o/r(.git)``, API URLs such as
    ``https://api.github.com/repos/o/r/issues/1`` (Enterprise ``/api/v3``
    prefixes included) and ``git@github.com:o/r.git``.

    Raises:
        ValueError: If the URL does not name a repository
    """
    ssh = _SSH_PATTERN.match(url.strip())
    if ssh:
        return RepositoryByKey(ssh.group("owner"), ssh.group("name"))

    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Not a repository URL: {url!r}")

    segments = [segment for segment in parsed.path.split("/") if segment]
    if "repos" in segments:
        segments = segments[segments.index("repos") + 1 :]

    if len(segments) < 2:
        raise ValueError(f"Not a repository URL: {url!r}")

    name = segments[1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return RepositoryByKey(segments[0], name)


def resolve_repository(
    ref: Any = None,
    default_owner: str | None = None,
    default_name: str | None = None,
) -> ResolvedRepository:
    """Resolve a repository reference into its canonical form.

    Args:
        ref: Any supported reference form, or None to use the defaults
        default_owner: Owner used when ``ref`` is None
        default_name: Repository name used when ``ref`` is None

    Raises:
        ValueError: If the reference cannot be resolved
    """
    if ref is None:
        if not default_owner or not default_name:
            raise ValueError("No repository given and no default repository set")
        ref = RepositoryByKey(default_owner, default_name)
    elif isinstance(ref, str):
        if "://" in ref or ref.startswith("git@"):
            ref = RepositoryByUrl(ref)
        else:
            owner, _, name = ref.partition("/")
            ref = RepositoryByKey(owner, name)
    elif isinstance(ref, int) and not isinstance(ref, bool):
        ref = RepositoryById(ref)
    elif not isinstance(ref, RepositoryRef) and isinstance(
        getattr(ref, "full_name", None), str
    ):
        owner, _, name = ref.full_name.partition("/")
        ref = RepositoryByKey(owner, name)

    if isinstance(ref, RepositoryByUrl):
        ref = parse_repository_url(ref.url)

    if isinstance(ref, RepositoryByKey):
        return ResolvedRepository(f"repos/{ref.owner}/{ref.name}", ref.owner, ref.name)
    if isinstance(ref, RepositoryById):
        if ref.id <= 0:
            raise ValueError(f"Invalid repository id: {ref.id}")
        return ResolvedRepository(f"repositories/{ref.id}")

    raise ValueError(f"Unsupported repository reference: {ref!r}")
