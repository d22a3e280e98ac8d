"""Shared pydantic models: REST payload shapes and the internal views built from them."""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, SecretStr

GitUrlOption = Literal["ssh", "default", "endpoint"]


class PrState(StrEnum):
    MERGED = "merged"
    CLOSED = "closed"
    OPEN = "open"


class BbsPrState(StrEnum):
    """Pull request states as reported by the REST API."""

    MERGED = "MERGED"
    DECLINED = "DECLINED"
    OPEN = "OPEN"


class HostCredential(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr


class CloneLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str  # "http" | "ssh"
    href: str


class RepositoryLinks(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    clone: list[CloneLink] = []

    def find_clone(self, name: str) -> CloneLink | None:
        return next((link for link in self.clone if link.name == name), None)


class Project(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str
    name: str | None = None


class Repository(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    slug: str
    name: str
    project: Project
    links: RepositoryLinks = RepositoryLinks()

    @property
    def full_name(self) -> str:
        return f"{self.project.key}/{self.slug}"


class ReviewerError(BaseModel):
    context: str | None = None
    message: str | None = None


class BitbucketErrorEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    exceptionName: str | None = None
    message: str | None = None
    reviewerErrors: list[ReviewerError] | None = None


class BitbucketErrorBody(BaseModel):
    """Structured error payload returned with 4xx responses."""

    model_config = ConfigDict(extra="ignore")

    errors: list[BitbucketErrorEntry] = []


class MinimalRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    displayId: str


class RestPullRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    version: int
    title: str
    description: str | None = None
    state: str  # kept raw; mapped through map_pr_state
    createdDate: int
    fromRef: MinimalRef
    toRef: MinimalRef


class PullRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int
    version: int
    title: str
    body: str | None = None
    source_branch: str
    target_branch: str
    state: PrState
    created_at: int  # epoch millis, as reported by the server
