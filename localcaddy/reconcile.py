import logging
from dataclasses import dataclass

import click

from .admin import AdminClient
from .bootstrap import ensure_caddy_server_exists
from .config import Options
from .domain import check_hosts_for_local, compute_domain
from .errors import DomainConflict, PortUndiscoverable
from .probe import is_port_active
from .routes import (
    add_route,
    extract_upstream_port,
    find_route_by_host,
    get_routes,
    https_url,
    replace_route_at,
)

logger = logging.getLogger(__name__)

CREATED = "created"
REPLACED = "replaced"
UNCHANGED = "unchanged"

MAX_PORT = 65535


@dataclass(frozen=True)
class Reconciled:
    """The domain now routes to the local port."""
    domain: str
    url: str
    action: str


@dataclass(frozen=True)
class Conflict:
    """The domain stays bound to another live port (permissive policy)."""
    domain: str
    active_port: int


def port_from_address(address):
    """Port from a bound server address.

    Accepts an int, a socket address tuple ("127.0.0.1", 5173) or
    ("::1", 5173, 0, 0), or a "host:port" string.
    """
    port = None
    if isinstance(address, int):
        port = address
    elif isinstance(address, (tuple, list)) and len(address) >= 2:
        port = address[1]
    elif isinstance(address, str):
        _, sep, tail = address.rpartition(":")
        if sep and tail.isdigit():
            port = int(tail)

    if not isinstance(port, int) or isinstance(port, bool) or not 0 < port <= MAX_PORT:
        raise PortUndiscoverable(f"Unable to determine dev server port from {address!r}")
    return port


def reconcile(port, options=None, client=None, probe=is_port_active):
    """Point the project's domain at the local port.

    Returns Reconciled, or Conflict when the domain is bound to another live
    port and fail_on_active_domain is off. With fail_on_active_domain on,
    that case raises DomainConflict and nothing is written.
    """
    if not port or not 0 < port <= MAX_PORT:
        raise PortUndiscoverable(f"Unable to determine dev server port (got {port!r})")
    options = options or Options()
    if client is None:
        client = AdminClient.from_options(options)
        try:
            return _reconcile(port, options, client, probe)
        finally:
            client.close()
    return _reconcile(port, options, client, probe)


def _reconcile(port, options, client, probe):
    domain = compute_domain(
        domain=options.domain,
        name_source=options.name_source,
        tld=options.tld,
        cwd=options.cwd,
    )
    url = https_url(domain, options.listen)

    ensure_caddy_server_exists(client, options, domain)
    check_hosts_for_local(domain, options.hosts_file)

    routes = get_routes(client, options.server_id)
    route, index = find_route_by_host(routes, domain)

    if route is None:
        add_route(client, options.server_id, domain, port, options.insert_first)
        return Reconciled(domain, url, CREATED)

    existing_port = extract_upstream_port(route)
    if existing_port is None:
        logger.info(f"Route #{index} for {domain} has no usable upstream, replacing it")
        replace_route_at(client, options.server_id, index, domain, port)
        return Reconciled(domain, url, REPLACED)

    if probe(existing_port, timeout=options.probe_timeout):
        if existing_port == port:
            logger.info(f"Route for {domain} already points at {port}")
            return Reconciled(domain, url, UNCHANGED)

        if options.fail_on_active_domain:
            raise DomainConflict(domain, existing_port)
        logger.warning(f"⚠️  {DomainConflict(domain, existing_port)}")
        return Conflict(domain, existing_port)

    logger.info(f"Port {existing_port} for {domain} is not active, repointing to {port}")
    replace_route_at(client, options.server_id, index, domain, port)
    return Reconciled(domain, url, REPLACED)


def print_where_to_browse(url):
    click.echo(f"  ➜  {click.style('Domain', bold=True)}: {click.style(url, fg='cyan')} {click.style('(via caddy)', dim=True)}")


def wire_domain(address, options=None, client=None):
    """Reconcile for a running dev server and print where to browse.

    DomainConflict propagates; the caller owns shutting its server down.
    With options.verbose, progress is logged at INFO unless the
    localcaddy logger already has a level.
    """
    options = options or Options()
    package_logger = logging.getLogger("localcaddy")
    if options.verbose and package_logger.level == logging.NOTSET:
        package_logger.setLevel(logging.INFO)
    port = port_from_address(address)
    outcome = reconcile(port, options=options, client=client)
    if isinstance(outcome, Reconciled):
        print_where_to_browse(outcome.url)
    return outcome
