"""Bitbucket Server REST API client."""

import logging

import httpx

from bbs_platform.errors import InvalidReviewersError
from bbs_platform.http import BitbucketServerHttp
from bbs_platform.models import HostCredential, PullRequest, Repository, RestPullRequest
from bbs_platform.settings import BbsSettings
from bbs_platform.utils import (
    accumulate_values,
    get_invalid_reviewers,
    get_repo_git_url,
    is_invalid_reviewers_response,
    pr_info,
)

logger = logging.getLogger(__name__)

API_PREFIX = "rest/api/1.0"


class BitbucketServerClient:
    def __init__(self, settings: BbsSettings, credential: HostCredential) -> None:
        self._settings = settings
        self._credential = credential
        self._http = BitbucketServerHttp(settings.endpoint, auth=credential, timeout=settings.timeout)

    def _repo_path(self, project: str, repo: str) -> str:
        return f"{API_PREFIX}/projects/{project}/repos/{repo}"

    def get_repo(self, project: str, repo: str) -> Repository:
        response = self._http.get_json(self._repo_path(project, repo))
        return Repository.model_validate(response.json())

    def list_repos(self, project: str) -> list[Repository]:
        values = accumulate_values(
            self._http,
            self._http.resolve(f"{API_PREFIX}/projects/{project}/repos"),
            limit=self._settings.page_limit,
        )
        return [Repository.model_validate(v) for v in values]

    def list_prs(self, project: str, repo: str, state: str = "ALL") -> list[PullRequest]:
        url = self._http.resolve(f"{self._repo_path(project, repo)}/pull-requests?state={state}")
        values = accumulate_values(self._http, url, limit=self._settings.page_limit)
        return [pr_info(RestPullRequest.model_validate(v)) for v in values]

    def get_pr(self, project: str, repo: str, number: int) -> PullRequest:
        response = self._http.get_json(f"{self._repo_path(project, repo)}/pull-requests/{number}")
        return pr_info(RestPullRequest.model_validate(response.json()))

    def create_pr(
        self,
        project: str,
        repo: str,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str | None = None,
        reviewers: list[str] | None = None,
    ) -> PullRequest:
        """Open a pull request.

        If the server rejects some reviewers (inactive users, the author, ...) the
        request is retried once without them.
        """
        reviewers = list(reviewers or [])
        try:
            return self._post_pr(project, repo, source_branch, target_branch, title, description, reviewers)
        except httpx.HTTPStatusError as err:
            if not is_invalid_reviewers_response(err):
                raise
            invalid = get_invalid_reviewers(err)
            remaining = [r for r in reviewers if r not in invalid]
            if len(remaining) == len(reviewers):
                raise InvalidReviewersError(invalid) from err
            logger.debug("Retrying pull request creation without invalid reviewers %s", invalid)
            return self._post_pr(project, repo, source_branch, target_branch, title, description, remaining)

    def _post_pr(
        self,
        project: str,
        repo: str,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str | None,
        reviewers: list[str],
    ) -> PullRequest:
        body: dict = {
            "title": title,
            "fromRef": {"id": f"refs/heads/{source_branch}"},
            "toRef": {"id": f"refs/heads/{target_branch}"},
            "reviewers": [{"user": {"name": name}} for name in reviewers],
        }
        if description:
            body["description"] = description
        response = self._http.post_json(f"{self._repo_path(project, repo)}/pull-requests", {"json": body})
        return pr_info(RestPullRequest.model_validate(response.json()))

    def get_repo_git_url(self, project: str, repo: str) -> str | None:
        info = self.get_repo(project, repo)
        return get_repo_git_url(
            repository=f"{project}/{repo}",
            default_endpoint=self._settings.endpoint,
            git_url=self._settings.git_url,
            info=info,
            opts=self._credential,
        )
