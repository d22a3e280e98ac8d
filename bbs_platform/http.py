"""JSON transport for the Bitbucket Server REST API."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from bbs_platform.git import redact_url
from bbs_platform.models import HostCredential

logger = logging.getLogger(__name__)

HttpOptions = Mapping[str, Any]


class BitbucketServerHttp:
    """Thin httpx wrapper: basic auth, JSON headers, relative URLs resolved against the endpoint.

    Non-2xx responses raise httpx.HTTPStatusError; nothing is retried.
    """

    def __init__(self, endpoint: str, auth: HostCredential | None = None, timeout: float = 30) -> None:
        self._base_url = httpx.URL(endpoint if endpoint.endswith("/") else f"{endpoint}/")
        self._auth = (auth.username, auth.password.get_secret_value()) if auth else None
        self._timeout = timeout
        self._headers = {
            "Accept": "application/json",
            "X-Atlassian-Token": "no-check",
        }

    def resolve(self, url: str) -> str:
        return str(self._base_url.join(url))

    def _request(self, method: str, url: str, options: HttpOptions | None) -> httpx.Response:
        opts = dict(options or {})
        headers = {**self._headers, **opts.pop("headers", {})}
        full_url = self.resolve(url)
        logger.debug("%s %s", method, redact_url(full_url))
        response = httpx.request(
            method,
            full_url,
            headers=headers,
            auth=self._auth,
            timeout=self._timeout,
            **opts,
        )
        response.raise_for_status()
        return response

    def get_json(self, url: str, options: HttpOptions | None = None) -> httpx.Response:
        return self._request("GET", url, options)

    def post_json(self, url: str, options: HttpOptions | None = None) -> httpx.Response:
        return self._request("POST", url, options)

    def put_json(self, url: str, options: HttpOptions | None = None) -> httpx.Response:
        return self._request("PUT", url, options)

    def patch_json(self, url: str, options: HttpOptions | None = None) -> httpx.Response:
        return self._request("PATCH", url, options)

    def head_json(self, url: str, options: HttpOptions | None = None) -> httpx.Response:
        return self._request("HEAD", url, options)

    def delete_json(self, url: str, options: HttpOptions | None = None) -> httpx.Response:
        return self._request("DELETE", url, options)


def call_api(
    http: BitbucketServerHttp,
    api_url: str,
    method: str = "get",
    options: HttpOptions | None = None,
) -> httpx.Response:
    """Dispatch one request by verb name. Unrecognised verbs are sent as GET."""
    match method.lower():
        case "post":
            return http.post_json(api_url, options)
        case "put":
            return http.put_json(api_url, options)
        case "patch":
            return http.patch_json(api_url, options)
        case "head":
            return http.head_json(api_url, options)
        case "delete":
            return http.delete_json(api_url, options)
        case _:
            return http.get_json(api_url, options)
