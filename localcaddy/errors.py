"""
Errors raised by localcaddy.

Library code only raises; the CLI turns these into messages and exit codes.
"""


class LocalCaddyError(Exception):
    """Base error for localcaddy."""
    pass


class RequestFailed(LocalCaddyError):
    """The Caddy admin API answered a write with a non-2xx status, or sent back something that is not JSON."""

    def __init__(self, method, path, status, body=""):
        self.method = method
        self.path = path
        self.status = status
        self.body = body
        message = f"HTTP {status} for {method} {path}"
        if body:
            message = f"{message}\n{body}"
        super().__init__(message)


class PortUndiscoverable(LocalCaddyError):
    """The port the local dev server is bound to could not be determined."""
    pass


class DomainConflict(LocalCaddyError):
    """The domain is already routed to a different port that is still listening."""

    def __init__(self, domain, active_port):
        self.domain = domain
        self.active_port = active_port
        super().__init__(
            f"Domain '{domain}' is already mapped to active port {active_port}. "
            f"Refusing to overwrite. Stop that service or choose a different domain."
        )
