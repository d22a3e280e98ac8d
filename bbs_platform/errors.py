"""Exceptions raised by the Bitbucket Server adapter.

Transport failures are not wrapped: httpx.HTTPError subclasses reach the caller unchanged.
"""


class BitbucketServerError(RuntimeError):
    pass


class MalformedPageResponse(BitbucketServerError):
    """A paged response that cannot be continued or read."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Malformed page response from {url}: {reason}")
        self.url = url
        self.reason = reason


class UnknownPrState(BitbucketServerError):
    def __init__(self, state: object) -> None:
        super().__init__(f"Unknown pull request state {state!r}. Expected one of MERGED, DECLINED, OPEN")
        self.state = state


class InvalidReviewersError(BitbucketServerError):
    def __init__(self, reviewers: list[str]) -> None:
        super().__init__(f"Bitbucket Server rejected reviewers: {', '.join(reviewers) or '(unspecified)'}")
        self.reviewers = reviewers
