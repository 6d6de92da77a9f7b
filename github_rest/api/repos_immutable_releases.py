# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Repository immutable releases API (REST).

Resources:
  PUT    /repos/{owner}/{repo}/immutable-releases   -> 204 No Content
  DELETE /repos/{owner}/{repo}/immutable-releases   -> 204 No Content
  GET    /repos/{owner}/{repo}/immutable-releases

Example API Response (GET):
  {
    "enabled": true,
    "enforced_by_owner": false
  }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, TYPE_CHECKING

from ..request_types import RequestContext, Response
from .base_dto import BaseDTO, one_of, opt

if TYPE_CHECKING:  # pragma: no cover
    from .. import GitHubAPIClient


@dataclass(frozen=True)
class RepoImmutableReleasesStatus(BaseDTO):
    """Immutable releases status for a repository."""

    enabled: Optional[bool] = opt()
    enforced_by_owner: Optional[bool] = opt()


def _immutable_releases_path(owner: str, repo: str) -> str:
    return f"repos/{owner}/{repo}/immutable-releases"


class RepositoriesService:
    """Repository endpoints (only the immutable releases toggles live here for now)."""

    def __init__(self, client: "GitHubAPIClient"):
        self._client = client

    def enable_immutable_releases(
        self, owner: str, repo: str, *, ctx: Optional[RequestContext] = None
    ) -> Response:
        """Enable immutable releases for a repository.

        GitHub API docs: https://docs.github.com/rest/repos/repos#enable-immutable-releases
        """
        req = self._client.new_request("PUT", _immutable_releases_path(owner, repo), label="repos_immutable_releases")
        _, resp = self._client.do(req, None, ctx=ctx)
        return resp

    def disable_immutable_releases(
        self, owner: str, repo: str, *, ctx: Optional[RequestContext] = None
    ) -> Response:
        """Disable immutable releases for a repository.

        GitHub API docs: https://docs.github.com/rest/repos/repos#disable-immutable-releases
        """
        req = self._client.new_request("DELETE", _immutable_releases_path(owner, repo), label="repos_immutable_releases")
        _, resp = self._client.do(req, None, ctx=ctx)
        return resp

    def are_immutable_releases_enabled(
        self, owner: str, repo: str, *, ctx: Optional[RequestContext] = None
    ) -> Tuple[Optional[RepoImmutableReleasesStatus], Response]:
        """Check if immutable releases are enabled for the repository.

        GitHub API docs: https://docs.github.com/rest/repos/repos#check-if-immutable-releases-are-enabled-for-a-repository
        """
        req = self._client.new_request("GET", _immutable_releases_path(owner, repo), label="repos_immutable_releases")
        return self._client.do(req, one_of(RepoImmutableReleasesStatus), ctx=ctx)


__all__ = ["RepoImmutableReleasesStatus", "RepositoriesService"]
