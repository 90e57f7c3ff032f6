"""Typed records decoded from GitHub responses.

Each record keeps every field GitHub sent (``extra="allow"``), declares the
ones operations rely on, and adds a ``type_tag`` plus convenience
properties such as ``repository_key`` so results can be passed straight to
the next operation.
"""

import base64
import binascii
from datetime import datetime
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field

from ..references import RepositoryByKey, parse_repository_url


class GitHubRecord(BaseModel):
    """Base class of decoded GitHub records."""

    model_config = ConfigDict(extra="allow", frozen=True)

    type_tag: ClassVar[str] = "GitHub.Record"

    id: int | None = None
    node_id: str | None = None
    url: str | None = None
    html_url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class User(GitHubRecord):
    type_tag: ClassVar[str] = "GitHub.User"

    login: str
    type: str | None = None
    site_admin: bool = False

    @property
    def user_name(self) -> str:
        return self.login


class Label(GitHubRecord):
    type_tag: ClassVar[str] = "GitHub.Label"

    name: str
    color: str | None = None
    description: str | None = None
    default: bool = False

    @property
    def label_name(self) -> str:
        return self.name

    @property
    def repository_key(self) -> RepositoryByKey | None:
        return _key_from_url(self.url)


class Repository(GitHubRecord):
    type_tag: ClassVar[str] = "GitHub.Repository"

    name: str
    full_name: str
    owner: User
    private: bool = False
    description: str | None = None
    fork: bool = False
    archived: bool = False
    default_branch: str | None = None
    visibility: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def repository_key(self) -> RepositoryByKey:
        owner, _, name = self.full_name.partition("/")
        return RepositoryByKey(owner, name)

    @property
    def repository_url(self) -> str | None:
        return self.html_url


class Issue(GitHubRecord):
    """An issue. Pull requests are issues too and carry ``pull_request``."""

    type_tag: ClassVar[str] = "GitHub.Issue"

    number: int
    title: str
    state: str
    body: str | None = None
    body_html: str | None = None
    body_text: str | None = None
    user: User | None = None
    labels: list[Label] = Field(default_factory=list)
    assignees: list[User] = Field(default_factory=list)
    locked: bool = False
    comments: int = 0
    repository_url: str | None = None
    pull_request: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request is not None

    @property
    def issue_number(self) -> int:
        return self.number

    @property
    def repository_key(self) -> RepositoryByKey | None:
        return _key_from_url(self.repository_url or self.url)


class PullRequest(GitHubRecord):
    type_tag: ClassVar[str] = "GitHub.PullRequest"

    number: int
    title: str
    state: str
    body: str | None = None
    user: User | None = None
    head: dict[str, Any] = Field(default_factory=dict)
    base: dict[str, Any] = Field(default_factory=dict)
    draft: bool = False
    merged: bool | None = None
    mergeable: bool | None = None
    created_at: datetime | None = None
    merged_at: datetime | None = None

    @property
    def pull_request_number(self) -> int:
        return self.number

    @property
    def head_ref(self) -> str | None:
        return self.head.get("ref")

    @property
    def base_ref(self) -> str | None:
        return self.base.get("ref")

    @property
    def repository_key(self) -> RepositoryByKey | None:
        return _key_from_url(self.url)


class Content(GitHubRecord):
    """File, directory, symlink or submodule returned by the contents API."""

    type_tag: ClassVar[str] = "GitHub.Content"

    type: str
    name: str
    path: str
    sha: str | None = None
    size: int = 0
    encoding: str | None = None
    content: str | None = None
    download_url: str | None = None
    entries: list[dict[str, Any]] | None = None

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_directory(self) -> bool:
        return self.type == "dir"

    @property
    def decoded_content(self) -> bytes | None:
        """File bytes, decoded from the base64 ``content`` field."""
        if self.content is None:
            return None
        if self.encoding not in (None, "base64"):
            return self.content.encode("utf-8")
        try:
            return base64.b64decode(self.content)
        except (binascii.Error, ValueError):
            return None

    @property
    def repository_key(self) -> RepositoryByKey | None:
        return _key_from_url(self.url)


class Release(GitHubRecord):
    type_tag: ClassVar[str] = "GitHub.Release"

    tag_name: str
    name: str | None = None
    body: str | None = None
    draft: bool = False
    prerelease: bool = False
    author: User | None = None
    created_at: datetime | None = None
    published_at: datetime | None = None

    @property
    def release_id(self) -> int | None:
        return self.id

    @property
    def repository_key(self) -> RepositoryByKey | None:
        return _key_from_url(self.url)


class RateLimit(GitHubRecord):
    type_tag: ClassVar[str] = "GitHub.RateLimit"

    resources: dict[str, dict[str, Any]] = Field(default_factory=dict)
    rate: dict[str, Any] = Field(default_factory=dict)

    @property
    def core_remaining(self) -> int | None:
        return self.resources.get("core", self.rate).get("remaining")


def _key_from_url(url: str | None) -> RepositoryByKey | None:
    if not url:
        return None
    try:
        return parse_repository_url(url)
    except ValueError:
        return None
