#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Command-line access to the Marketplace and immutable-releases endpoints.

Examples:
    github_rest_cli.py plans --per-page 50
    github_rest_cli.py --stubbed plan-account 1234
    github_rest_cli.py immutable-releases check ai-dynamo/dynamo
    github_rest_cli.py immutable-releases enable ai-dynamo/dynamo

Output is JSON on stdout; errors go to stderr with exit code 1.
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional, Tuple

from github_rest import GitHubAPIClient, GitHubError, ListOptions, RequestContext
from github_rest.request_types import Response

_logger = logging.getLogger("github_rest_cli")


def _split_repo(full_name: str) -> Tuple[str, str]:
    parts = str(full_name or "").split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise argparse.ArgumentTypeError(f"expected OWNER/REPO, got {full_name!r}")
    return parts[0], parts[1]


def _to_jsonable(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def _page_info(resp: Response) -> dict:
    info = {"status": resp.status_code}
    if resp.next_page:
        info["next_page"] = resp.next_page
    if resp.last_page:
        info["last_page"] = resp.last_page
    if resp.rate is not None:
        info["rate_remaining"] = resp.rate.remaining
    return info


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GitHub Marketplace / immutable releases REST client"
    )
    parser.add_argument('--token', help='GitHub token (default: ~/.config/github-token or gh CLI config)')
    parser.add_argument('--base-url', default=None, help='API root, must end with "/" (GitHub Enterprise)')
    parser.add_argument('--stubbed', action='store_true', help='Use the stubbed Marketplace endpoints')
    parser.add_argument('--timeout', type=float, default=None, help='Overall deadline in seconds')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every REST call')

    sub = parser.add_subparsers(dest='command', required=True)

    def _add_paging(p: argparse.ArgumentParser) -> None:
        p.add_argument('--page', type=int, default=0, help='Page number (1-based)')
        p.add_argument('--per-page', type=int, default=0, help='Results per page (max 100)')

    p_plans = sub.add_parser('plans', help='List Marketplace plans')
    _add_paging(p_plans)

    p_accounts = sub.add_parser('plan-accounts', help='List accounts on a plan')
    p_accounts.add_argument('plan_id', type=int)
    _add_paging(p_accounts)

    p_account = sub.add_parser('plan-account', help='Get the plan for an account id')
    p_account.add_argument('account_id', type=int)

    p_purchases = sub.add_parser('purchases', help="List the authenticated user's Marketplace purchases")
    _add_paging(p_purchases)

    p_ir = sub.add_parser('immutable-releases', help='Enable/disable/check immutable releases')
    p_ir.add_argument('action', choices=['enable', 'disable', 'check'])
    p_ir.add_argument('repo', type=_split_repo, help='OWNER/REPO')

    return parser


def run(args: argparse.Namespace, client: GitHubAPIClient) -> Tuple[Any, Response]:
    ctx = RequestContext(timeout_s=args.timeout) if args.timeout else None
    opts: Optional[ListOptions] = None
    if getattr(args, 'page', 0) or getattr(args, 'per_page', 0):
        opts = ListOptions(page=args.page, per_page=args.per_page)

    if args.command == 'plans':
        return client.marketplace.list_plans(opts, ctx=ctx)
    if args.command == 'plan-accounts':
        return client.marketplace.list_plan_accounts_for_plan(args.plan_id, opts, ctx=ctx)
    if args.command == 'plan-account':
        return client.marketplace.get_plan_account_for_account(args.account_id, ctx=ctx)
    if args.command == 'purchases':
        return client.marketplace.list_marketplace_purchases_for_user(opts, ctx=ctx)

    owner, repo = args.repo
    if args.action == 'enable':
        return None, client.repositories.enable_immutable_releases(owner, repo, ctx=ctx)
    if args.action == 'disable':
        return None, client.repositories.disable_immutable_releases(owner, repo, ctx=ctx)
    return client.repositories.are_immutable_releases_enabled(owner, repo, ctx=ctx)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='[%(levelname)s] %(message)s',
    )

    client_kwargs = {"marketplace_stubbed": args.stubbed, "debug_rest": args.verbose}
    if args.base_url:
        client_kwargs["base_url"] = args.base_url
    client = GitHubAPIClient(token=args.token, **client_kwargs)

    try:
        value, resp = run(args, client)
    except GitHubError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    out = {"response": _page_info(resp), "data": _to_jsonable(value)}
    print(json.dumps(out, indent=2, sort_keys=True))
    _logger.debug("REST stats: %s", client.get_rest_call_stats())
    return 0


if __name__ == '__main__':
    sys.exit(main())
