"""Pytest fixtures: an in-process fake Caddy admin API and loopback ports."""

import copy
import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import unquote

import pytest

from localcaddy.admin import AdminClient
from localcaddy.config import Options


class PathError(Exception):
    pass


def _child(node, segment):
    if isinstance(node, dict):
        if segment not in node:
            raise PathError(f"invalid traversal path at: {segment}")
        return node[segment]
    if isinstance(node, list):
        try:
            return node[int(segment)]
        except (ValueError, IndexError):
            raise PathError(f"invalid array index: {segment}")
    raise PathError(f"cannot traverse into {type(node).__name__}")


class FakeCaddy(HTTPServer):
    """Caddy admin API subset: /load plus GET/POST/PUT/PATCH/DELETE under /config/.

    PUT creates (409 if the key exists) or inserts into arrays, PATCH
    replaces an existing value, POST appends to arrays or sets a value.
    """

    def __init__(self, config=None):
        super().__init__(("127.0.0.1", 0), FakeCaddyHandler)
        self.config = config
        self.calls = []

    @property
    def url(self):
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"

    @property
    def writes(self):
        return [(m, p) for m, p in self.calls if m != "GET"]

    def lookup(self, segments):
        node = self.config
        if node is None and segments:
            raise PathError("config is empty")
        for segment in segments:
            node = _child(node, segment)
        return node

    def apply(self, method, segments, body):
        if not segments:
            if method == "DELETE":
                self.config = None
            elif method in ("POST", "PATCH") or (method == "PUT" and self.config is None):
                self.config = body
            else:
                raise PathError("key already exists: config")
            return

        if self.config is None:
            self.config = {}
        parent = self.lookup(segments[:-1])
        key = segments[-1]

        if isinstance(parent, list):
            try:
                index = int(key)
            except ValueError:
                raise PathError(f"invalid array index: {key}")
            if method == "PUT":
                if index < 0 or index > len(parent):
                    raise PathError(f"array index out of bounds: {index}")
                parent.insert(index, body)
            elif method == "PATCH":
                _child(parent, key)
                parent[index] = body
            elif method == "DELETE":
                _child(parent, key)
                del parent[index]
            else:
                target = _child(parent, key)
                if isinstance(target, list):
                    target.append(body)
                else:
                    parent[index] = body
            return

        if not isinstance(parent, dict):
            raise PathError(f"cannot set key on {type(parent).__name__}")
        if method == "PUT":
            if key in parent:
                raise PathError(f"key already exists: {key}")
            parent[key] = body
        elif method == "PATCH":
            _child(parent, key)
            parent[key] = body
        elif method == "DELETE":
            _child(parent, key)
            del parent[key]
        else:
            if isinstance(parent.get(key), list):
                parent[key].append(body)
            else:
                parent[key] = body


class FakeCaddyHandler(BaseHTTPRequestHandler):

    def _reply(self, status, payload=None):
        body = b"" if payload is None else (json.dumps(payload) + "\n").encode()
        self.send_response(status)
        if body:
            self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _segments(self):
        path = self.path.split("?", 1)[0]
        if not path.startswith("/config/"):
            return None
        return [unquote(s) for s in path[len("/config/"):].split("/") if s]

    def _handle(self):
        method = self.command
        self.server.calls.append((method, self.path))
        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length) if length else b""
        try:
            body = json.loads(raw) if raw else None
        except ValueError:
            return self._reply(400, {"error": "decoding request body"})

        if self.path == "/load" and method == "POST":
            self.server.config = body
            return self._reply(200)

        segments = self._segments()
        if segments is None:
            return self._reply(404, {"error": "not found"})
        try:
            if method == "GET":
                return self._reply(200, copy.deepcopy(self.server.lookup(segments)))
            self.server.apply(method, segments, body)
        except PathError as e:
            status = 409 if "already exists" in str(e) else 400
            return self._reply(status, {"error": str(e)})
        return self._reply(200)

    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = _handle

    def log_message(self, format, *args):
        pass


@pytest.fixture
def caddy():
    server = FakeCaddy()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def client(caddy):
    c = AdminClient(caddy.url, timeout=2)
    yield c
    c.close()


@pytest.fixture
def options(caddy, tmp_path):
    return Options(
        admin_url=caddy.url,
        server_id="local-dev",
        listen=(":443", ":80"),
        name_source="folder",
        tld="localhost",
        domain="app.localhost",
        fail_on_active_domain=True,
        insert_first=True,
        api_token="",
        hosts_file=str(tmp_path / "hosts"),
    )


@pytest.fixture
def listening_port():
    """A loopback port with something accepting connections"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(8)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def closed_port():
    """A loopback port nothing listens on"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def proxy_route(domain, dial, terminal=True):
    return {
        "match": [{"host": [domain]}],
        "handle": [{"handler": "reverse_proxy", "upstreams": [{"dial": dial}]}],
        "terminal": terminal,
    }


def server_config(routes=None, listen=None, server_id="local-dev", policies=None):
    config = {
        "apps": {
            "http": {
                "servers": {
                    server_id: {
                        "listen": listen if listen is not None else [":443", ":80"],
                        "routes": routes if routes is not None else [],
                    }
                }
            }
        }
    }
    if policies is not None:
        config["apps"]["tls"] = {"automation": {"policies": policies}}
    return config
