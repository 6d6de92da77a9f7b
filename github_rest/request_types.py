# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Request/response types shared by the client and the endpoint modules.

This module exists to keep `github_rest/__init__.py` small and to avoid circular
imports between the client and `github_rest/api/*`.
"""

from __future__ import annotations

import re
import threading
import time
import urllib.parse
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import requests

from .exceptions import RequestCancelledError


@dataclass(frozen=True)
class ListOptions:
    """Pagination options shared by list endpoints.

    Only non-zero values are sent, so `ListOptions()` adds no query string.
    """

    page: int = 0
    per_page: int = 0

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if int(self.page or 0) > 0:
            params["page"] = str(int(self.page))
        if int(self.per_page or 0) > 0:
            params["per_page"] = str(int(self.per_page))
        return params


@dataclass(frozen=True)
class Request:
    """A fully-built API request. Built by `GitHubAPIClient.new_request()`, never mutated."""

    method: str
    url: str
    path: str
    params: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    headers: Dict[str, str] = field(default_factory=dict)
    # Stats bucket, e.g. "marketplace_plans" or "repos_immutable-releases"
    label: str = ""

    @property
    def url_with_query(self) -> str:
        if not self.params:
            return self.url
        sep = "&" if "?" in self.url else "?"
        return f"{self.url}{sep}{urllib.parse.urlencode(self.params, doseq=True)}"


@dataclass(frozen=True)
class Rate:
    """Primary rate limit as reported by the X-RateLimit-* response headers."""

    limit: int
    remaining: int
    used: Optional[int] = None
    reset: Optional[datetime] = None
    resource: str = ""

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional["Rate"]:
        limit_hdr = headers.get("X-RateLimit-Limit")
        remaining_hdr = headers.get("X-RateLimit-Remaining")
        if limit_hdr is None or remaining_hdr is None:
            return None
        try:
            limit = int(limit_hdr)
            remaining = int(remaining_hdr)
        except (ValueError, TypeError):
            return None
        used: Optional[int] = None
        reset: Optional[datetime] = None
        try:
            if headers.get("X-RateLimit-Used") is not None:
                used = int(headers["X-RateLimit-Used"])
            if headers.get("X-RateLimit-Reset") is not None:
                reset = datetime.fromtimestamp(int(headers["X-RateLimit-Reset"]), tz=timezone.utc)
        except (ValueError, TypeError, OverflowError):
            pass
        return cls(
            limit=limit,
            remaining=remaining,
            used=used,
            reset=reset,
            resource=str(headers.get("X-RateLimit-Resource") or ""),
        )


def parse_link_header(link_header: str) -> Dict[str, int]:
    """Parse GitHub's Link header into {rel: page}.

    Example:
      <https://api.github.com/user/repos?page=3&per_page=100>; rel="next",
      <https://api.github.com/user/repos?page=50&per_page=100>; rel="last"
      -> {"next": 3, "last": 50}

    Links without a numeric `page` query parameter are skipped.
    """
    pages: Dict[str, int] = {}
    for link in str(link_header or "").split(","):
        segments = [s.strip() for s in link.split(";")]
        if len(segments) < 2:
            continue
        target = segments[0]
        if not (target.startswith("<") and target.endswith(">")):
            continue
        try:
            query = urllib.parse.urlparse(target[1:-1]).query
        except ValueError:
            continue
        page_vals = urllib.parse.parse_qs(query).get("page") or []
        if not page_vals:
            continue
        try:
            page = int(page_vals[0])
        except (ValueError, TypeError):
            continue
        for seg in segments[1:]:
            if not seg.startswith("rel="):
                continue
            rel = seg[len("rel="):].strip().strip('"')
            if rel in ("next", "prev", "first", "last"):
                pages[rel] = page
    return pages


@dataclass(frozen=True)
class Response:
    """Response metadata returned alongside every decoded value.

    Page markers are 0 when the Link header does not carry them.
    """

    http_response: requests.Response
    next_page: int = 0
    prev_page: int = 0
    first_page: int = 0
    last_page: int = 0
    rate: Optional[Rate] = None

    @classmethod
    def from_http(cls, resp: requests.Response) -> "Response":
        headers = resp.headers or {}
        pages = parse_link_header(headers.get("Link", ""))
        return cls(
            http_response=resp,
            next_page=int(pages.get("next", 0)),
            prev_page=int(pages.get("prev", 0)),
            first_page=int(pages.get("first", 0)),
            last_page=int(pages.get("last", 0)),
            rate=Rate.from_headers(headers),
        )

    @property
    def status_code(self) -> int:
        return int(self.http_response.status_code or 0)

    @property
    def headers(self) -> Mapping[str, str]:
        return self.http_response.headers


@dataclass
class RequestContext:
    """Cancellation + deadline carried into a single call (or a group of calls).

    Example:
        ctx = RequestContext(timeout_s=5)
        threading.Timer(1.0, ctx.cancel).start()
        client.repositories.are_immutable_releases_enabled("owner", "repo", ctx=ctx)
    """

    timeout_s: Optional[float] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    deadline: Optional[float] = field(init=False, default=None)

    def __post_init__(self) -> None:
        if self.timeout_s is not None:
            self.deadline = time.monotonic() + max(0.0, float(self.timeout_s))

    def cancel(self) -> None:
        self.cancel_event.set()

    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def remaining_s(self) -> Optional[float]:
        """Seconds until the deadline (None if there is no deadline)."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def raise_if_done(self) -> None:
        if self.cancelled():
            raise RequestCancelledError("request cancelled")
        rem = self.remaining_s()
        if rem is not None and rem <= 0:
            raise RequestCancelledError("context deadline exceeded", deadline_exceeded=True)


_FRACTION_RE = re.compile(r"\.(\d+)(?=[+-]\d{2}:?\d{2}$|$)")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a GitHub timestamp ("2026-01-24T10:30:00Z" or "2026-01-24") into an aware datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    s = str(value).strip()
    if not s:
        return None
    # fromisoformat() before 3.11 only takes 3 or 6 fractional digits.
    s = _FRACTION_RE.sub(lambda m: "." + (m.group(1) + "000000")[:6], s.replace("Z", "+00:00"))
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
