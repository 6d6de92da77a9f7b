# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitHub Marketplace API (REST).

Resources:
  GET /marketplace_listing/plans
  GET /marketplace_listing/plans/{plan_id}/accounts
  GET /marketplace_listing/accounts/{account_id}
  GET /user/marketplace_purchases

Stubbed mode:
  GitHub serves fixed sample data under `/marketplace_listing/stubbed/...` and
  `/user/marketplace_purchases/stubbed` so apps can be tested before going live.
  The flag is fixed per service instance; use `with_stubbed()` to get a service
  that targets the other variant.

Example API Response (GET /marketplace_listing/plans):
  [
    {
      "url": "https://api.github.com/marketplace_listing/plans/1313",
      "accounts_url": "https://api.github.com/marketplace_listing/plans/1313/accounts",
      "id": 1313,
      "number": 3,
      "name": "Pro",
      "description": "A professional-grade CI solution",
      "monthly_price_in_cents": 1099,
      "yearly_price_in_cents": 11870,
      "price_model": "FLAT_RATE",
      "has_free_trial": true,
      "unit_name": null,
      "state": "published",
      "bullets": ["Up to 25 private repositories", "11 concurrent builds"]
    }
  ]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple, TYPE_CHECKING

from ..request_types import ListOptions, RequestContext, Response
from .base_dto import BaseDTO, list_of, one_of, opt, opt_nested, opt_timestamp

if TYPE_CHECKING:  # pragma: no cover
    from .. import GitHubAPIClient

_logger = logging.getLogger(__name__)


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class MarketplacePlan(BaseDTO):
    """A GitHub App Marketplace plan."""

    url: Optional[str] = opt()
    accounts_url: Optional[str] = opt()
    id: Optional[int] = opt()
    number: Optional[int] = opt()
    name: Optional[str] = opt()
    description: Optional[str] = opt()
    monthly_price_in_cents: Optional[int] = opt()
    yearly_price_in_cents: Optional[int] = opt()
    # "FREE", "FLAT_RATE" or "PER_UNIT"
    price_model: Optional[str] = opt()
    unit_name: Optional[str] = opt()
    bullets: Optional[List[str]] = opt()
    # "draft" or "published"
    state: Optional[str] = opt()
    has_free_trial: Optional[bool] = opt()


@dataclass(frozen=True)
class MarketplacePurchaseAccount(BaseDTO):
    """The account a Marketplace purchase belongs to."""

    url: Optional[str] = opt()
    type: Optional[str] = opt()
    id: Optional[int] = opt()
    login: Optional[str] = opt()
    organization_billing_email: Optional[str] = opt()
    email: Optional[str] = opt()
    node_id: Optional[str] = opt()


@dataclass(frozen=True)
class MarketplacePurchase(BaseDTO):
    """A Marketplace purchase (the plan an account is currently on)."""

    account: Optional[MarketplacePurchaseAccount] = opt_nested("MarketplacePurchaseAccount")
    # "monthly" or "yearly"
    billing_cycle: Optional[str] = opt()
    next_billing_date: Optional[datetime] = opt_timestamp()
    unit_count: Optional[int] = opt()
    plan: Optional[MarketplacePlan] = opt_nested("MarketplacePlan")
    on_free_trial: Optional[bool] = opt()
    free_trial_ends_on: Optional[datetime] = opt_timestamp()
    updated_at: Optional[datetime] = opt_timestamp()


@dataclass(frozen=True)
class MarketplacePendingChange(BaseDTO):
    """A plan change that takes effect at the end of the current billing cycle."""

    effective_date: Optional[datetime] = opt_timestamp()
    unit_count: Optional[int] = opt()
    id: Optional[int] = opt()
    plan: Optional[MarketplacePlan] = opt_nested("MarketplacePlan")


@dataclass(frozen=True)
class MarketplacePlanAccount(BaseDTO):
    """An account (user or org) subscribed to a Marketplace plan."""

    url: Optional[str] = opt()
    type: Optional[str] = opt()
    id: Optional[int] = opt()
    login: Optional[str] = opt()
    organization_billing_email: Optional[str] = opt()
    marketplace_purchase: Optional[MarketplacePurchase] = opt_nested("MarketplacePurchase")
    marketplace_pending_change: Optional[MarketplacePendingChange] = opt_nested("MarketplacePendingChange")


# =============================================================================
# Service
# =============================================================================

class MarketplaceService:
    """Endpoints of the GitHub Marketplace API.

    Note: every endpoint except `list_marketplace_purchases_for_user` requires
    GitHub App (JWT) or OAuth App (basic) authentication.
    """

    def __init__(self, client: "GitHubAPIClient", *, stubbed: bool = False):
        self._client = client
        self._stubbed = bool(stubbed)

    @property
    def stubbed(self) -> bool:
        return self._stubbed

    def with_stubbed(self, stubbed: bool = True) -> "MarketplaceService":
        """Return a service bound to the same client that targets the (non-)stubbed endpoints."""
        return MarketplaceService(self._client, stubbed=stubbed)

    def _listing_path(self, endpoint: str) -> str:
        if self._stubbed:
            return f"marketplace_listing/stubbed/{endpoint}"
        return f"marketplace_listing/{endpoint}"

    def _purchases_path(self) -> str:
        if self._stubbed:
            return "user/marketplace_purchases/stubbed"
        return "user/marketplace_purchases"

    def list_plans(
        self,
        opts: Optional[ListOptions] = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> Tuple[List[MarketplacePlan], Response]:
        """List all plans for your Marketplace listing.

        GitHub API docs: https://docs.github.com/rest/apps/marketplace#list-plans
        """
        req = self._client.new_request(
            "GET",
            self._listing_path("plans"),
            params=opts.to_params() if opts is not None else None,
            label="marketplace_plans",
        )
        return self._client.do(req, list_of(MarketplacePlan), ctx=ctx)

    def list_plan_accounts_for_plan(
        self,
        plan_id: int,
        opts: Optional[ListOptions] = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> Tuple[List[MarketplacePlanAccount], Response]:
        """List all GitHub accounts (user or organization) on a specific plan.

        GitHub API docs: https://docs.github.com/rest/apps/marketplace#list-accounts-for-a-plan
        """
        req = self._client.new_request(
            "GET",
            self._listing_path(f"plans/{plan_id}/accounts"),
            params=opts.to_params() if opts is not None else None,
            label="marketplace_plan_accounts",
        )
        return self._client.do(req, list_of(MarketplacePlanAccount), ctx=ctx)

    def get_plan_account_for_account(
        self,
        account_id: int,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> Tuple[Optional[MarketplacePlanAccount], Response]:
        """Get the plan associated with an account ID.

        GitHub API docs: https://docs.github.com/rest/apps/marketplace#get-a-subscription-plan-for-an-account
        """
        req = self._client.new_request(
            "GET",
            self._listing_path(f"accounts/{account_id}"),
            label="marketplace_account",
        )
        return self._client.do(req, one_of(MarketplacePlanAccount), ctx=ctx)

    def list_marketplace_purchases_for_user(
        self,
        opts: Optional[ListOptions] = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> Tuple[List[MarketplacePurchase], Response]:
        """List Marketplace purchases made by the authenticated user.

        GitHub API docs: https://docs.github.com/rest/apps/marketplace#list-subscriptions-for-the-authenticated-user
        """
        req = self._client.new_request(
            "GET",
            self._purchases_path(),
            params=opts.to_params() if opts is not None else None,
            label="marketplace_purchases",
        )
        _logger.debug("listing marketplace purchases (stubbed=%s)", self._stubbed)
        return self._client.do(req, list_of(MarketplacePurchase), ctx=ctx)


__all__ = [
    "MarketplacePendingChange",
    "MarketplacePlan",
    "MarketplacePlanAccount",
    "MarketplacePurchase",
    "MarketplacePurchaseAccount",
    "MarketplaceService",
]
