import json
import logging
from urllib.parse import quote

import requests

from .errors import RequestFailed

logger = logging.getLogger(__name__)


def config_path(*segments):
    """Build a /config/ path from raw segments, quoting each one.

    config_path("apps", "http", "servers", "my dev") -> "/config/apps/http/servers/my%20dev"
    """
    return "/config/" + "/".join(quote(str(s), safe="") for s in segments)


class AdminClient:
    """Thin JSON wrapper around the Caddy admin API.

    Reads (GET) return None on any non-2xx status since a missing path is
    expected while probing the config tree. Writes raise RequestFailed.
    Every call is attempted exactly once.
    """

    def __init__(self, base_url="http://127.0.0.1:2019", token="", timeout=5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["Content-Type"] = "application/json"
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_options(cls, options):
        return cls(options.admin_url, token=options.api_token, timeout=options.request_timeout)

    def _send(self, method, path, body=None):
        data = json.dumps(body) if body is not None else None
        response = self.session.request(method, f"{self.base_url}{path}", data=data, timeout=self.timeout)
        logger.debug(f"{method} {path} -> {response.status_code}" + (f" {data}" if data is not None else ""))
        return response

    def fetch_json(self, method, path, body=None):
        """Send one request and decode its JSON response.

        Returns the decoded value, or None for an empty body or a failed read.
        """
        method = method.upper()
        response = self._send(method, path, body)

        if not response.ok:
            if method == "GET":
                return None
            raise RequestFailed(method, path, response.status_code, response.text)

        text = response.text
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError:
            raise RequestFailed(method, path, response.status_code, f"invalid JSON in response: {text[:200]}")

    def get(self, path):
        return self.fetch_json("GET", path)

    def post(self, path, body):
        return self.fetch_json("POST", path, body)

    def put(self, path, body):
        return self.fetch_json("PUT", path, body)

    def patch(self, path, body):
        return self.fetch_json("PATCH", path, body)

    def load(self, config):
        """Replace the whole running config"""
        return self.post("/load", config)

    def exists(self, path):
        """True when GET on path succeeds.

        A path holding JSON null still exists, so this can't be built on get().
        """
        return self._send("GET", path).ok

    def close(self):
        self.session.close()
