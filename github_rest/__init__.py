# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitHub REST API client for github-rest-bindings.

Layout:
- `github_rest/` defines the API client (request building, dispatch, error mapping, stats)
- `github_rest/api/*.py` contains one module per resource (paths + DTOs + service class)

Every endpoint goes through the same two steps:

    req = client.new_request("GET", "repos/owner/repo/immutable-releases")
    status, resp = client.do(req, one_of(RepoImmutableReleasesStatus))

`do()` performs exactly one HTTP request: no retries, no caching.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import time
import urllib.parse
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

import requests
import yaml

from .exceptions import (
    GitHubAPIError,
    GitHubAuthError,
    GitHubError,
    GitHubForbiddenError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubSecondaryRateLimitError,
    RequestCancelledError,
    RequestConstructionError,
    ResponseDecodeError,
    TransportError,
)
from .request_types import ListOptions, Rate, Request, RequestContext, Response

from .api.marketplace import MarketplaceService
from .api.repos_immutable_releases import RepositoriesService

_logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.github.com/"
DEFAULT_USER_AGENT = "github-rest-bindings/0.1"
DEFAULT_TIMEOUT_S = 10.0
API_VERSION = "2022-11-28"

# ASCII control characters and spaces are never valid in a URL path (a raw "\n" in an owner name, etc).
_CTL_RE = re.compile(r"[\x00-\x20\x7f]")
# Query strings go through `params`; a "?" or "#" inside a path would end the path early.
_URL_DELIM_RE = re.compile(r"[?#]")

# How often an in-flight call re-checks its RequestContext.
_CANCEL_POLL_S = 0.02


# ======================================================================================
# REST STATISTICS
# ======================================================================================
# Each client keeps its own counters; every call is also added to GITHUB_API_STATS so
# scripts that create several clients can report one total.

class _GitHubAPIStats:
    """Thread-safe REST call statistics."""

    def __init__(self):
        self._mu = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._mu:
            self.rest_calls_total = 0
            self.rest_calls_by_label: Dict[str, int] = {}
            self.rest_success_total = 0
            self.rest_time_total_s = 0.0
            self.rest_time_by_label_s: Dict[str, float] = {}

            # Error stats
            self.rest_errors_total = 0
            self.rest_errors_by_status: Dict[int, int] = {}
            self.rest_last_error: Dict[str, Any] = {}
            self.rest_last_error_label = ""

    def record(self, *, label: str, url: str, status_code: Optional[int], dt_s: float) -> None:
        lbl = str(label or "").strip() or "unknown"
        dt = max(0.0, float(dt_s or 0.0))
        with self._mu:
            self.rest_calls_total += 1
            self.rest_calls_by_label[lbl] = self.rest_calls_by_label.get(lbl, 0) + 1
            self.rest_time_total_s += dt
            self.rest_time_by_label_s[lbl] = self.rest_time_by_label_s.get(lbl, 0.0) + dt

            # status_code None == transport failure (no response at all)
            sc = int(status_code) if status_code is not None else 0
            if 200 <= sc < 300:
                self.rest_success_total += 1
                return
            self.rest_errors_total += 1
            self.rest_errors_by_status[sc] = self.rest_errors_by_status.get(sc, 0) + 1
            self.rest_last_error = {"status": sc, "url": str(url or "")}
            self.rest_last_error_label = lbl

    def to_dict(self) -> Dict[str, Any]:
        with self._mu:
            return {
                "total": int(self.rest_calls_total),
                "success_total": int(self.rest_success_total),
                "error_total": int(self.rest_errors_total),
                "time_total_s": float(self.rest_time_total_s),
                "by_label": dict(sorted(self.rest_calls_by_label.items(), key=lambda kv: (-kv[1], kv[0]))),
                "time_by_label_s": dict(sorted(self.rest_time_by_label_s.items(), key=lambda kv: (-kv[1], kv[0]))),
                "errors_by_status": dict(sorted(self.rest_errors_by_status.items(), key=lambda kv: (-kv[1], kv[0]))),
                "last_error_label": str(self.rest_last_error_label or ""),
                "last_error": dict(self.rest_last_error or {}),
            }


# Global instance - all clients write to this
GITHUB_API_STATS = _GitHubAPIStats()


def _close_abandoned_response(fut: "Future[requests.Response]") -> None:
    """Done-callback for a call whose caller already got RequestCancelledError."""
    if fut.cancelled():
        return
    err = fut.exception()
    if err is not None:
        _logger.debug("abandoned GitHub API request failed after cancellation: %s", err)
        return
    fut.result().close()


class GitHubAPIClient:
    """GitHub REST API client with automatic token detection.

    Features:
    - Automatic token detection (explicit arg > ~/.config/github-token > GitHub CLI config file)
    - One request per call; errors mapped onto `github_rest.exceptions`
    - Per-call cancellation/deadline via `RequestContext`
    - Safe to share across threads (no per-call state on the client besides stats)

    Example:
        client = GitHubAPIClient()
        plans, resp = client.marketplace.list_plans(ListOptions(page=1, per_page=50))
        status, _ = client.repositories.are_immutable_releases_enabled("owner", "repo")
    """

    @staticmethod
    def get_github_token_from_file() -> Optional[str]:
        """Get GitHub token from a local config file.

        Currently supported locations (first match wins):
        - ~/.config/github-token   (single line token)
        - ~/.config/gh/hosts.yml   (GitHub CLI login; oauth_token)
        """
        try:
            token_file = Path.home() / ".config" / "github-token"
            if token_file.exists():
                tok = (token_file.read_text() or "").strip()
                if tok:
                    return tok
        except OSError:
            pass
        return GitHubAPIClient.get_github_token_from_cli()

    @staticmethod
    def get_github_token_from_cli() -> Optional[str]:
        """Get GitHub token from GitHub CLI configuration (~/.config/gh/hosts.yml)."""
        try:
            gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
            if gh_config_path.exists():
                with open(gh_config_path, "r") as f:
                    config = yaml.safe_load(f)
                if config and "github.com" in config:
                    github_config = config["github.com"] or {}
                    if "oauth_token" in github_config:
                        return github_config["oauth_token"]
                    for _user, user_config in (github_config.get("users") or {}).items():
                        if isinstance(user_config, dict) and "oauth_token" in user_config:
                            return user_config["oauth_token"]
        except (OSError, yaml.YAMLError):
            pass
        return None

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT_S,
        marketplace_stubbed: bool = False,
        require_auth: bool = False,
        debug_rest: bool = False,
        session: Optional[requests.Session] = None,
        read_token_files: bool = True,
    ):
        """Initialize GitHub API client.

        Args:
            token: GitHub personal access token. If not provided (and read_token_files is True):
                   1. ~/.config/github-token (if present)
                   2. GitHub CLI config (~/.config/gh/hosts.yml)
            base_url: API root; must end with "/" (GitHub Enterprise: "https://HOST/api/v3/").
            marketplace_stubbed: Route Marketplace calls to the `/stubbed/` sample endpoints.
                                 Fixed for the lifetime of the client.
            require_auth: If True, raise an error if we cannot find a token.
            session: Optional requests.Session (connection pooling). Default: one-shot requests.
        """
        if token is None and read_token_files:
            token = self.get_github_token_from_file()
        self.token = token
        self.require_auth = bool(require_auth)
        self.base_url = str(base_url or "")
        self.user_agent = str(user_agent or DEFAULT_USER_AGENT)
        self.timeout = float(timeout)
        self.logger = logging.getLogger(self.__class__.__name__)
        self._debug_rest = bool(debug_rest)
        self._http = session if session is not None else requests

        if self.require_auth and not self.token:
            raise RuntimeError(
                "GitHub API authentication is required but no token was found. "
                "Pass --token, or login with gh so ~/.config/gh/hosts.yml exists."
            )

        self.headers: Dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": self.user_agent,
        }
        if self.token:
            self.headers["Authorization"] = f"token {self.token}"

        self._stats = _GitHubAPIStats()
        self._rate_mu = threading.Lock()
        self._last_rate: Optional[Rate] = None

        # Resource services (pure composition, no per-call state).
        self.marketplace = MarketplaceService(self, stubbed=marketplace_stubbed)
        self.repositories = RepositoriesService(self)

    def has_token(self) -> bool:
        """Check if a GitHub token is configured."""
        return self.token is not None

    # -----------------------------------------------------------------------------
    # Request construction
    # -----------------------------------------------------------------------------

    def new_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        label: Optional[str] = None,
    ) -> Request:
        """Build a request for `path` relative to base_url.

        Raises RequestConstructionError (before any network I/O) when:
        - base_url is not an absolute http(s) URL ending in "/"
        - path contains control characters, whitespace, "?" or "#"
        - body cannot be JSON-encoded
        """
        base = str(self.base_url or "")
        parts = urllib.parse.urlsplit(base)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise RequestConstructionError(f"base_url must be an absolute http(s) URL, got {base!r}")
        if not parts.path.endswith("/"):
            raise RequestConstructionError(f"base_url must have a trailing slash, but {base!r} does not")

        p = str(path or "")
        if _CTL_RE.search(p):
            raise RequestConstructionError(f"invalid control character or whitespace in URL path {p!r}")
        if _URL_DELIM_RE.search(p):
            raise RequestConstructionError(f"unexpected query or fragment delimiter in URL path {p!r}")

        url = urllib.parse.urljoin(base, p)

        data: Optional[bytes] = None
        headers: Dict[str, str] = {}
        if body is not None:
            payload = body.to_dict() if hasattr(body, "to_dict") else body
            try:
                data = json.dumps(payload).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise RequestConstructionError(f"cannot JSON-encode request body for {p}: {e}") from e
            headers["Content-Type"] = "application/json"

        return Request(
            method=str(method or "GET").upper(),
            url=url,
            path=p,
            params={str(k): str(v) for k, v in (params or {}).items()},
            body=data,
            headers=headers,
            label=str(label or "") or self._rest_label_for_path(p),
        )

    @staticmethod
    def _rest_label_for_path(path: str) -> str:
        """Coarse label for a REST path (keeps ids/owners from exploding cardinality)."""
        parts = [seg for seg in str(path or "").split("/") if seg]
        # /repos/<owner>/<repo>/<resource>/...: bucket by the resource segment after repo.
        if len(parts) >= 4 and parts[0] == "repos":
            return f"repos_{parts[3]}"
        return "/".join(seg for seg in parts[:3] if not seg.isdigit()) or "unknown"

    # -----------------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------------

    def do(
        self,
        req: Request,
        decoder: Optional[Callable[[Any], T]] = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> Tuple[Optional[T], Response]:
        """Send `req`, check the status and decode the JSON body with `decoder`.

        Returns (value, Response). value is None when decoder is None or the body is empty
        (e.g. 204 No Content).

        Raises:
            RequestCancelledError: ctx cancelled / deadline exceeded (before or during the call)
            TransportError: network failure
            GitHubAPIError (and subclasses): non-2xx status
            ResponseDecodeError: body is not JSON or does not match the decoder's shape

        Every exception carries `.response` (None when no response was received).
        """
        if ctx is not None:
            ctx.raise_if_done()

        timeout = self.timeout
        bounded_by_ctx = False
        if ctx is not None:
            rem = ctx.remaining_s()
            if rem is not None and rem < timeout:
                timeout = rem
                bounded_by_ctx = True

        headers = dict(self.headers)
        headers.update(req.headers)

        if self._debug_rest:
            self.logger.debug("GH REST %s [%s] %s", req.method, req.label, req.url_with_query)

        status_code: Optional[int] = None
        t0 = time.monotonic()
        try:
            http_resp = self._send(req, headers, timeout, ctx)
            status_code = int(http_resp.status_code or 0)
        except requests.exceptions.Timeout as e:
            if bounded_by_ctx:
                raise RequestCancelledError("context deadline exceeded", deadline_exceeded=True) from e
            raise TransportError(f"GitHub API request timed out for {req.method} {req.path}: {e}") from e
        except requests.exceptions.RequestException as e:
            if ctx is not None and ctx.cancelled():
                raise RequestCancelledError("request cancelled") from e
            raise TransportError(f"GitHub API request failed for {req.method} {req.path}: {e}") from e
        finally:
            dt = max(0.0, time.monotonic() - t0)
            self._stats.record(label=req.label, url=req.url_with_query, status_code=status_code, dt_s=dt)
            GITHUB_API_STATS.record(label=req.label, url=req.url_with_query, status_code=status_code, dt_s=dt)

        resp = Response.from_http(http_resp)
        if resp.rate is not None:
            with self._rate_mu:
                self._last_rate = resp.rate

        if self._debug_rest:
            rem_hdr = resp.rate.remaining if resp.rate is not None else None
            self.logger.debug("GH REST RESP [%s] status=%s remaining=%s", req.label, status_code, rem_hdr)

        if ctx is not None and ctx.cancelled():
            raise RequestCancelledError("request cancelled", response=resp)

        self._check_response(req, resp)

        if decoder is None:
            return None, resp

        raw = http_resp.content or b""
        if not raw.strip():
            return None, resp
        try:
            payload = json.loads(raw)
        except ValueError as e:
            raise ResponseDecodeError(f"invalid JSON in response to {req.method} {req.path}: {e}", response=resp) from e
        try:
            value = decoder(payload)
        except (TypeError, ValueError, KeyError) as e:
            raise ResponseDecodeError(f"unexpected response shape for {req.method} {req.path}: {e}", response=resp) from e
        return value, resp

    def _send(
        self,
        req: Request,
        headers: Dict[str, str],
        timeout: float,
        ctx: Optional[RequestContext],
    ) -> requests.Response:
        """Run the HTTP call. With a ctx, the call runs on a worker thread and this returns
        (raising RequestCancelledError) as soon as ctx is cancelled or its deadline passes."""
        kwargs: Dict[str, Any] = dict(params=req.params or None, data=req.body, headers=headers, timeout=timeout)
        if ctx is None:
            return self._http.request(req.method, req.url, **kwargs)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="github-rest")
        try:
            fut = executor.submit(self._http.request, req.method, req.url, **kwargs)
        finally:
            # Do not wait: an abandoned call finishes (or times out) on its own thread.
            executor.shutdown(wait=False)

        while True:
            done, _ = wait([fut], timeout=_CANCEL_POLL_S)
            if done:
                return fut.result()
            if ctx.cancelled():
                fut.add_done_callback(_close_abandoned_response)
                raise RequestCancelledError("request cancelled")
            rem = ctx.remaining_s()
            if rem is not None and rem <= 0:
                fut.add_done_callback(_close_abandoned_response)
                raise RequestCancelledError("context deadline exceeded", deadline_exceeded=True)

    def _check_response(self, req: Request, resp: Response) -> None:
        """Raise the matching GitHubAPIError subclass for any non-2xx response."""
        code = resp.status_code
        if 200 <= code < 300:
            return

        message = ""
        errors = None
        documentation_url = ""
        body_txt = ""
        try:
            body_txt = resp.http_response.text or ""
        except (ValueError, TypeError):
            body_txt = ""
        try:
            body = json.loads(body_txt) if body_txt.strip() else None
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("message") or "")
            errors = body.get("errors") if isinstance(body.get("errors"), list) else None
            documentation_url = str(body.get("documentation_url") or "")
        if not message:
            # Keep it small (HTML error pages can be huge).
            message = body_txt[:300] or (resp.http_response.reason or "")

        kwargs: Dict[str, Any] = dict(
            status_code=code,
            endpoint=req.path,
            message=message,
            errors=errors,
            documentation_url=documentation_url,
            response=resp,
        )
        self.logger.debug("GH REST ERROR [%s] %s %s -> %s %s", req.label, req.method, req.path, code, message)

        if code == 401:
            raise GitHubAuthError(**kwargs)
        if code in (403, 429):
            if resp.rate is not None and resp.rate.remaining == 0:
                raise GitHubRateLimitError(**kwargs)
            if "secondary-rate-limits" in documentation_url or "abuse-rate-limits" in documentation_url:
                retry_after: Optional[int] = None
                try:
                    ra = resp.headers.get("Retry-After")
                    retry_after = int(ra) if ra is not None else None
                except (ValueError, TypeError):
                    retry_after = None
                raise GitHubSecondaryRateLimitError(retry_after_s=retry_after, **kwargs)
            if code == 403:
                raise GitHubForbiddenError(**kwargs)
        if code == 404:
            raise GitHubNotFoundError(**kwargs)
        raise GitHubAPIError(**kwargs)

    # -----------------------------------------------------------------------------
    # Stats
    # -----------------------------------------------------------------------------

    def get_rest_call_stats(self) -> Dict[str, Any]:
        """Return REST call stats for this client instance."""
        return self._stats.to_dict()

    def rate_limit_info(self) -> Optional[Rate]:
        """Last rate limit seen in a response header (None before the first call)."""
        with self._rate_mu:
            return self._last_rate


__all__ = [
    "GITHUB_API_STATS",
    "GitHubAPIClient",
    "GitHubAPIError",
    "GitHubAuthError",
    "GitHubError",
    "GitHubForbiddenError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubSecondaryRateLimitError",
    "ListOptions",
    "MarketplaceService",
    "Rate",
    "Request",
    "RequestCancelledError",
    "RequestConstructionError",
    "RequestContext",
    "RepositoriesService",
    "Response",
    "ResponseDecodeError",
    "TransportError",
]
