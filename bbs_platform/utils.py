"""Pagination, error classification, remote URL resolution and PR mapping for Bitbucket Server.

REST reference: https://docs.atlassian.com/bitbucket-server/rest/6.0.0/bitbucket-rest.html
"""

import logging
from collections.abc import Iterator, Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from bbs_platform import git
from bbs_platform.errors import MalformedPageResponse, UnknownPrState
from bbs_platform.http import BitbucketServerHttp, HttpOptions, call_api
from bbs_platform.models import (
    BbsPrState,
    BitbucketErrorBody,
    BitbucketErrorEntry,
    GitUrlOption,
    HostCredential,
    PrState,
    PullRequest,
    Repository,
    RestPullRequest,
)

logger = logging.getLogger(__name__)

BITBUCKET_INVALID_REVIEWERS_EXCEPTION = "com.atlassian.bitbucket.pull.InvalidPullRequestReviewersException"

DEFAULT_PAGE_LIMIT = 100

_PR_STATE_MAPPING: dict[BbsPrState, PrState] = {
    BbsPrState.MERGED: PrState.MERGED,
    BbsPrState.DECLINED: PrState.CLOSED,
    BbsPrState.OPEN: PrState.OPEN,
}


# ---------------------------------------------------------------------------
# Pull request mapping
# ---------------------------------------------------------------------------


def map_pr_state(state: str) -> PrState:
    try:
        return _PR_STATE_MAPPING[BbsPrState(state)]
    except ValueError:
        raise UnknownPrState(state) from None


def pr_info(pr: RestPullRequest) -> PullRequest:
    return PullRequest(
        version=pr.version,
        number=pr.id,
        body=pr.description,
        source_branch=pr.fromRef.displayId,
        target_branch=pr.toRef.displayId,
        title=pr.title,
        state=map_pr_state(pr.state),
        created_at=pr.createdDate,
    )


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def set_query_params(url: str, overrides: Mapping[str, Any]) -> str:
    """Return url with overrides merged into its query string.

    Existing parameters keep their position; overridden ones are replaced in place
    and new ones are appended. A repeated key that is overridden keeps only its first
    position. Scheme, userinfo, host, port and path are untouched.
    """
    parsed = httpx.URL(url)
    replacements = httpx.QueryParams(dict(overrides))
    items: list[tuple[str, str]] = []
    for key, value in parsed.params.multi_items():
        if key not in replacements:
            items.append((key, value))
        elif key not in {k for k, _ in items}:
            items.append((key, replacements[key]))
    items += [(key, value) for key, value in replacements.multi_items() if key not in parsed.params]
    return str(parsed.copy_with(params=httpx.QueryParams(items)))


def iter_values(
    http: BitbucketServerHttp,
    req_url: str,
    method: str = "get",
    options: HttpOptions | None = None,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> Iterator[Any]:
    """Yield every value of a paged endpoint, fetching pages one at a time.

    A page ends the walk unless its isLastPage is literally False. A page that claims
    more results but gives no nextPageStart raises MalformedPageResponse.
    """
    next_url = set_query_params(req_url, {"limit": limit})

    while True:
        body = call_api(http, next_url, method, options).json()
        if not isinstance(body, Mapping) or not isinstance(body.get("values"), list):
            raise MalformedPageResponse(git.redact_url(next_url), "expected an object with a 'values' list")

        values = body["values"]
        logger.debug("Fetched %d values from %s", len(values), git.redact_url(next_url))
        yield from values

        if body.get("isLastPage") is not False:
            return

        next_start = body.get("nextPageStart")
        if next_start is None:
            raise MalformedPageResponse(git.redact_url(next_url), "isLastPage is false but nextPageStart is missing")
        next_url = set_query_params(next_url, {"start": next_start})


def accumulate_values(
    http: BitbucketServerHttp,
    req_url: str,
    method: str = "get",
    options: HttpOptions | None = None,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> list[Any]:
    return list(iter_values(http, req_url, method, options, limit))


# ---------------------------------------------------------------------------
# Reviewer errors
# ---------------------------------------------------------------------------


def _error_entries(err: BaseException) -> list[BitbucketErrorEntry]:
    response = getattr(err, "response", None)
    if not isinstance(response, httpx.Response):
        return []
    try:
        return BitbucketErrorBody.model_validate(response.json()).errors
    except (ValueError, ValidationError):
        # not JSON, or not the structured error shape
        return []


def is_invalid_reviewers_response(err: BaseException) -> bool:
    """True only if there is at least one error and every error is an invalid-reviewers error."""
    errors = _error_entries(err)
    return len(errors) > 0 and all(e.exceptionName == BITBUCKET_INVALID_REVIEWERS_EXCEPTION for e in errors)


def get_invalid_reviewers(err: BaseException) -> list[str]:
    invalid_reviewers: list[str] = []
    for error in _error_entries(err):
        if error.exceptionName != BITBUCKET_INVALID_REVIEWERS_EXCEPTION:
            continue
        invalid_reviewers.extend(
            r.context for r in error.reviewerErrors or [] if r.context and r.context.strip()
        )
    return invalid_reviewers


# ---------------------------------------------------------------------------
# Git remote URL resolution
# ---------------------------------------------------------------------------


def generate_url_from_endpoint(default_endpoint: str, opts: HostCredential, repository: str) -> str:
    url = httpx.URL(default_endpoint)
    path = url.path if url.path.endswith("/") else f"{url.path}/"
    generated_url = git.get_url(
        protocol=url.scheme,
        auth=opts,
        host=f"{url.netloc.decode('ascii')}{path}scm",
        repository=repository,
    )
    logger.debug("Using generated endpoint URL %s", git.redact_url(generated_url))
    return generated_url


def get_repo_git_url(
    repository: str,
    default_endpoint: str,
    git_url: GitUrlOption | None,
    info: Repository,
    opts: HostCredential,
) -> str | None:
    """Pick the git remote URL for repository.

    git_url selects the source: "ssh" and "default" use the matching clone link or
    give None, "endpoint" always builds one from default_endpoint, and None tries
    the http link, then the ssh link, then the endpoint.
    """
    http_link = info.links.find_clone("http")
    ssh_link = info.links.find_clone("ssh")

    match git_url:
        case None:
            if http_link:
                logger.debug("Using http URL %s", git.redact_url(http_link.href))
                return git.inject_credentials(http_link.href, opts)
            if ssh_link:
                # ssh URLs carry their own auth
                logger.debug("Using ssh URL %s", git.redact_url(ssh_link.href))
                return ssh_link.href
            return generate_url_from_endpoint(default_endpoint, opts, repository)
        case "ssh":
            if ssh_link:
                logger.debug("Using ssh URL %s", git.redact_url(ssh_link.href))
                return ssh_link.href
            logger.warning("ssh URL could not be found for %s", repository)
        case "default":
            if http_link:
                logger.debug("Using default URL %s", git.redact_url(http_link.href))
                return git.inject_credentials(http_link.href, opts)
            logger.warning("http clone URL could not be found for %s", repository)
        case "endpoint":
            return generate_url_from_endpoint(default_endpoint, opts, repository)
        case _:
            logger.warning("Unknown git_url option %r for %s", git_url, repository)
    return None
