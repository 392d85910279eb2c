import os
from dataclasses import dataclass, field

# Configuration - environment defaults, overridable per Options(...)
ADMIN_URL = os.getenv("LOCALCADDY_ADMIN_URL", "http://127.0.0.1:2019")
SERVER_ID = os.getenv("LOCALCADDY_SERVER_ID", "local-dev")
LISTEN = os.getenv("LOCALCADDY_LISTEN", ":443,:80")  # Comma-separated
NAME_SOURCE = os.getenv("LOCALCADDY_NAME_SOURCE", "folder")  # folder | pkg
TLD = os.getenv("LOCALCADDY_TLD", "localhost")
DOMAIN = os.getenv("LOCALCADDY_DOMAIN", None)  # If set, overrides NAME_SOURCE + TLD
FAIL_ON_ACTIVE_DOMAIN = os.getenv("LOCALCADDY_FAIL_ON_ACTIVE_DOMAIN", "true").lower() != "false"
INSERT_FIRST = os.getenv("LOCALCADDY_INSERT_FIRST", "true").lower() != "false"
VERBOSE = os.getenv("LOCALCADDY_VERBOSE", "false").lower() == "true"
API_TOKEN = os.getenv("LOCALCADDY_API_TOKEN", "")
HOSTS_FILE = os.getenv("LOCALCADDY_HOSTS_FILE", "/etc/hosts")

# Timeouts (seconds)
PROBE_TIMEOUT = float(os.getenv("LOCALCADDY_PROBE_TIMEOUT", "0.35"))
REQUEST_TIMEOUT = float(os.getenv("LOCALCADDY_REQUEST_TIMEOUT", "5"))

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()  # DEBUG, INFO, WARNING, ERROR

NAME_SOURCES = ("folder", "pkg")


def split_listen(value):
    """Split a comma-separated listen string into addresses."""
    if not value:
        return ()
    return tuple(a.strip() for a in value.split(",") if a.strip())


@dataclass(frozen=True)
class Options:
    """Effective settings for one reconciliation.

    Every field is defaulted from the environment; pass keyword arguments
    to override.
    """

    admin_url: str = ADMIN_URL
    server_id: str = SERVER_ID
    listen: tuple = field(default_factory=lambda: split_listen(LISTEN))
    name_source: str = NAME_SOURCE
    tld: str = TLD
    domain: str = DOMAIN
    fail_on_active_domain: bool = FAIL_ON_ACTIVE_DOMAIN
    insert_first: bool = INSERT_FIRST
    verbose: bool = VERBOSE
    api_token: str = API_TOKEN
    hosts_file: str = HOSTS_FILE
    probe_timeout: float = PROBE_TIMEOUT
    request_timeout: float = REQUEST_TIMEOUT
    cwd: str = None

    def __post_init__(self):
        if self.name_source not in NAME_SOURCES:
            raise ValueError(
                f"name_source must be one of {', '.join(NAME_SOURCES)}, got {self.name_source!r}"
            )
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "listen", tuple(self.listen))
        object.__setattr__(self, "admin_url", self.admin_url.rstrip("/"))
        if not self.domain:
            object.__setattr__(self, "domain", None)
