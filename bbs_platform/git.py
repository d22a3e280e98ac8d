"""Git remote URL helpers.

inject_credentials is the only place a password is written into a URL. Anything
that logs a URL should pass it through redact_url first.
"""

from urllib.parse import quote

import httpx

from bbs_platform.models import HostCredential


def inject_credentials(url: str, opts: HostCredential) -> str:
    """Return url with opts set as its userinfo, replacing any existing userinfo."""
    # httpx keeps existing %XX sequences as-is, so encode every reserved character up front
    parsed = httpx.URL(url)
    return str(
        parsed.copy_with(
            username=quote(opts.username, safe=""),
            password=quote(opts.password.get_secret_value(), safe=""),
        )
    )


def redact_url(url: str) -> str:
    """Replace the password component of url with ***.

    scp-like remotes (git@host:repo.git) carry no password and are returned as-is.
    """
    if "://" not in url:
        return url
    parsed = httpx.URL(url)
    if not parsed.password:
        return url
    return str(parsed.copy_with(username=quote(parsed.username, safe=""), password="***"))


def get_url(protocol: str, auth: HostCredential | None, host: str, repository: str) -> str:
    """Build a git remote URL.

    host may carry a path prefix (e.g. "bitbucket.example.com/scm"). For ssh the
    scp-like form is returned and auth is ignored.
    """
    protocol = protocol.rstrip(":") or "https"
    if protocol == "ssh":
        return f"git@{host}:{repository}.git"
    url = f"{protocol}://{host.rstrip('/')}/{repository}.git"
    if auth is None:
        return url
    return inject_credentials(url, auth)
