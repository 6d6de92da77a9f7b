# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitHub REST error types.

These are intentionally lightweight so endpoint modules and callers can catch
specific error classes (e.g. 404 Not Found) without creating import cycles.

Every error raised by `GitHubAPIClient.do()` carries the response metadata that
was available at the time (`.response`, possibly None), so callers can still
inspect status and rate-limit headers after a failure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .request_types import Response


class GitHubError(Exception):
    """Base class for everything raised by this package."""

    def __init__(self, message: str, *, response: Optional["Response"] = None):
        super().__init__(message)
        self.message = str(message or "")
        self.response = response


class RequestConstructionError(GitHubError, ValueError):
    """The request could not be built (bad base URL, bad path, unencodable body).

    Raised before any network I/O happens.
    """


class TransportError(GitHubError):
    """Network-level failure (DNS, connection refused, TLS, read timeout, ...)."""


class RequestCancelledError(TransportError):
    """The caller's RequestContext was cancelled or its deadline passed."""

    def __init__(self, message: str = "request cancelled", *, deadline_exceeded: bool = False,
                 response: Optional["Response"] = None):
        super().__init__(message, response=response)
        self.deadline_exceeded = bool(deadline_exceeded)


class ResponseDecodeError(GitHubError):
    """The response body did not match the expected JSON shape."""


class GitHubAPIError(GitHubError):
    """Non-2xx response from the API.

    Mirrors GitHub's error body:
        {"message": "...", "errors": [...], "documentation_url": "..."}
    """

    def __init__(
        self,
        *,
        status_code: int,
        endpoint: str,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        documentation_url: str = "",
        response: Optional["Response"] = None,
    ):
        super().__init__(message, response=response)
        self.status_code = int(status_code)
        self.endpoint = str(endpoint or "")
        self.errors: List[Dict[str, Any]] = list(errors or [])
        self.documentation_url = str(documentation_url or "")

    def __str__(self) -> str:
        s = f"{self.endpoint}: {self.status_code} {self.message}"
        if self.errors:
            s += f" {self.errors}"
        return s


class GitHubAuthError(GitHubAPIError):
    pass


class GitHubForbiddenError(GitHubAPIError):
    pass


class GitHubRateLimitError(GitHubForbiddenError):
    """Primary rate limit exhausted (X-RateLimit-Remaining: 0)."""

    @property
    def reset(self) -> Optional[datetime]:
        rate = self.response.rate if self.response is not None else None
        return rate.reset if rate is not None else None


class GitHubSecondaryRateLimitError(GitHubForbiddenError):
    """Secondary ("abuse") rate limit; `retry_after_s` comes from the Retry-After header."""

    def __init__(self, *, retry_after_s: Optional[int] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.retry_after_s = retry_after_s


class GitHubNotFoundError(GitHubAPIError):
    pass


__all__ = [
    "GitHubError",
    "RequestConstructionError",
    "TransportError",
    "RequestCancelledError",
    "ResponseDecodeError",
    "GitHubAPIError",
    "GitHubAuthError",
    "GitHubForbiddenError",
    "GitHubRateLimitError",
    "GitHubSecondaryRateLimitError",
    "GitHubNotFoundError",
]
