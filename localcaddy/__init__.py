"""
localcaddy - stable HTTPS domains for local dev servers.

Drives a Caddy reverse proxy through its admin API: derives a domain for the
current project, bootstraps the HTTP server and an internal TLS policy, and
points a route for that domain at the local dev server's port.
"""

__version__ = "0.1.0"

from .config import Options
from .domain import compute_domain, slug_from_folder, slug_from_pkg
from .errors import DomainConflict, LocalCaddyError, PortUndiscoverable, RequestFailed
from .probe import is_port_active
from .reconcile import Conflict, Reconciled, reconcile, wire_domain
from .routes import extract_upstream_port, find_route_by_host, pick_https_port

__all__ = [
    "Options",
    "compute_domain",
    "slug_from_folder",
    "slug_from_pkg",
    "LocalCaddyError",
    "RequestFailed",
    "PortUndiscoverable",
    "DomainConflict",
    "is_port_active",
    "Reconciled",
    "Conflict",
    "reconcile",
    "wire_domain",
    "find_route_by_host",
    "extract_upstream_port",
    "pick_https_port",
]
