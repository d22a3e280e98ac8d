"""Shared test fixtures."""

import pytest

from bbs_platform.http import BitbucketServerHttp
from bbs_platform.models import HostCredential, Repository
from bbs_platform.settings import BbsSettings

ENDPOINT = "https://stash.example.com/vcs/"
API = f"{ENDPOINT}rest/api/1.0"


def make_repo(*clone: tuple[str, str]) -> Repository:
    return Repository.model_validate(
        {
            "slug": "repo",
            "name": "repo",
            "project": {"key": "SOME"},
            "links": {"clone": [{"name": name, "href": href} for name, href in clone]},
        }
    )


def rest_pr(**overrides) -> dict:
    pr = {
        "id": 5,
        "version": 2,
        "title": "Update dependency httpx to v0.28",
        "description": "Bumps httpx.",
        "state": "OPEN",
        "open": True,
        "createdDate": 1700000000000,
        "fromRef": {"id": "refs/heads/renovate/httpx", "displayId": "renovate/httpx"},
        "toRef": {"id": "refs/heads/main", "displayId": "main"},
    }
    pr.update(overrides)
    return pr


@pytest.fixture
def credential() -> HostCredential:
    return HostCredential(username="abc", password="123")  # type: ignore[arg-type]


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> BbsSettings:
    # env vars outrank constructor values
    for var in ("BBS_ENDPOINT", "BBS_USERNAME", "BBS_PASSWORD", "BBS_GIT_URL", "BBS_PAGE_LIMIT"):
        monkeypatch.delenv(var, raising=False)
    return BbsSettings(endpoint=ENDPOINT, username="abc", password="123", page_limit=100)  # type: ignore[arg-type]


@pytest.fixture
def http(credential: HostCredential) -> BitbucketServerHttp:
    return BitbucketServerHttp(ENDPOINT, auth=credential)
