# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Shared pytest fixtures: a local HTTP server with a route table and clients pointed at it.

Run from the repo root:
    pytest -v
"""

import json
import sys
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

import pytest

# Set up path for imports
_repo_root = Path(__file__).parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

from github_rest import GitHubAPIClient, RequestConstructionError, TransportError

# All routes live under this prefix so tests catch absolute ("/foo") paths that
# would escape a GitHub Enterprise style base URL.
BASE_URL_PATH = "/api-v3"

# (status, body, headers); body may be str/bytes/None, or any JSON-encodable object.
Reply = Tuple[int, Any, Dict[str, str]]


@dataclass
class RecordedRequest:
    method: str
    path: str
    query: Dict[str, List[str]]
    headers: Dict[str, str]
    body: bytes = b""

    def form_values(self) -> Dict[str, str]:
        return {k: v[0] for k, v in self.query.items()}


@dataclass
class Mux:
    """Route table: path (relative to BASE_URL_PATH) -> handler(RecordedRequest) -> Reply."""

    routes: Dict[str, Callable[[RecordedRequest], Reply]] = field(default_factory=dict)
    requests: List[RecordedRequest] = field(default_factory=list)
    base_url: str = ""
    _mu: threading.Lock = field(default_factory=threading.Lock)

    def handle(self, path: str, fn: Callable[[RecordedRequest], Reply]) -> None:
        self.routes[path] = fn

    def record(self, rec: RecordedRequest) -> None:
        with self._mu:
            self.requests.append(rec)


def json_reply(body: Any, status: int = 200, headers: Optional[Dict[str, str]] = None) -> Reply:
    return status, body, dict(headers or {})


def no_content() -> Reply:
    return 204, None, {}


class _Handler(BaseHTTPRequestHandler):
    def _dispatch(self) -> None:
        mux: Mux = self.server.mux  # type: ignore[attr-defined]
        parsed = urlsplit(self.path)
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        rec = RecordedRequest(
            method=self.command,
            path=parsed.path,
            query=parse_qs(parsed.query),
            headers={k: v for k, v in self.headers.items()},
            body=body,
        )
        mux.record(rec)

        if not parsed.path.startswith(BASE_URL_PATH + "/"):
            status, payload, headers = 400, {"message": f"URL path must start with {BASE_URL_PATH}"}, {}
        else:
            fn = mux.routes.get(parsed.path[len(BASE_URL_PATH):])
            if fn is None:
                status, payload, headers = 404, {"message": "Not Found"}, {}
            else:
                status, payload, headers = fn(rec)

        if payload is None:
            data = b""
        elif isinstance(payload, bytes):
            data = payload
        elif isinstance(payload, str):
            data = payload.encode("utf-8")
        else:
            data = json.dumps(payload).encode("utf-8")

        self.send_response(status)
        if data and "Content-Type" not in headers:
            self.send_header("Content-Type", "application/json; charset=utf-8")
        for k, v in headers.items():
            self.send_header(k, v)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        if data:
            self.wfile.write(data)

    do_GET = _dispatch
    do_PUT = _dispatch
    do_DELETE = _dispatch
    do_POST = _dispatch
    do_PATCH = _dispatch

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        pass


@pytest.fixture
def mux():
    """Start a local server; yield its route table."""
    m = Mux()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    server.daemon_threads = True
    server.mux = m  # type: ignore[attr-defined]
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    m.base_url = f"http://127.0.0.1:{server.server_address[1]}{BASE_URL_PATH}/"
    try:
        yield m
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def make_client(mux):
    """Factory for clients pointed at the local server (no token files are read)."""

    def _make(**kwargs: Any) -> GitHubAPIClient:
        kwargs.setdefault("token", "test-token")
        kwargs.setdefault("base_url", mux.base_url)
        kwargs.setdefault("timeout", 5.0)
        kwargs.setdefault("read_token_files", False)
        return GitHubAPIClient(**kwargs)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def check_new_request_and_do_failure(mux, make_client):
    """Assert `call(client)` fails cleanly for both a request-construction and a transport error.

    `call` must raise; it never gets the chance to return a partially populated value.
    """

    def _check(call: Callable[[GitHubAPIClient], Any]) -> None:
        # Base URL without trailing slash: new_request fails before any network I/O.
        n_before = len(mux.requests)
        bad = make_client(base_url=mux.base_url.rstrip("/"))
        with pytest.raises(RequestConstructionError) as ei:
            call(bad)
        assert ei.value.response is None
        assert len(mux.requests) == n_before

        # Nothing listens on port 1: the transport fails.
        down = make_client(base_url="http://127.0.0.1:1/")
        with pytest.raises(TransportError) as ei2:
            call(down)
        assert ei2.value.response is None

    return _check
