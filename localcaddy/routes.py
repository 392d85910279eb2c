import logging
import re

from .admin import config_path

logger = logging.getLogger(__name__)

UPSTREAM_HOST = "127.0.0.1"

_TRAILING_PORT = re.compile(r":(\d+)$")


def _trailing_port(address):
    match = _TRAILING_PORT.search(address.strip())
    return int(match.group(1)) if match else None


def build_route(domain, port):
    """Terminal reverse_proxy route sending domain to the local port"""
    return {
        "match": [{"host": [domain]}],
        "handle": [
            {
                "handler": "reverse_proxy",
                "upstreams": [{"dial": f"{UPSTREAM_HOST}:{port}"}],
            }
        ],
        "terminal": True,
    }


def find_route_by_host(routes, host):
    """Return (route, index) of the first route whose host matcher lists host, else (None, -1)."""
    for index, route in enumerate(routes or []):
        if not isinstance(route, dict):
            continue
        matches = route.get("match")
        for m in matches if isinstance(matches, list) else []:
            hosts = m.get("host") if isinstance(m, dict) else None
            if isinstance(hosts, list) and host in hosts:
                return route, index
    return None, -1


def extract_upstream_port(route):
    """Port of the first upstream dial of a reverse_proxy handler, scanning handlers in order.

    Returns None if no reverse_proxy handler has a dial address ending in a port.
    """
    handlers = route.get("handle") if isinstance(route, dict) else None
    for handler in handlers if isinstance(handlers, list) else []:
        if not isinstance(handler, dict) or handler.get("handler") != "reverse_proxy":
            continue
        upstreams = handler.get("upstreams")
        if isinstance(upstreams, list) and upstreams:
            first = upstreams[0]
            dial = first.get("dial") if isinstance(first, dict) else None
            port = _trailing_port(dial) if isinstance(dial, str) else None
            if port is not None:
                return port
    return None


def pick_https_port(listen):
    """Prefer 443, else the first listen port that isn't 80.

    pick_https_port([":443", ":80"]) -> 443
    pick_https_port([":8443", ":80"]) -> 8443
    pick_https_port([":80"]) -> None
    """
    ports = [p for p in (_trailing_port(a) for a in listen) if p is not None]
    if 443 in ports:
        return 443
    for port in ports:
        if port != 80:
            return port
    return None


def https_url(domain, listen):
    https_port = pick_https_port(listen)
    if https_port and https_port != 443:
        return f"https://{domain}:{https_port}"
    return f"https://{domain}"


def routes_path(server_id, *segments):
    return config_path("apps", "http", "servers", server_id, "routes", *segments)


def get_routes(client, server_id):
    routes = client.get(routes_path(server_id))
    return routes if isinstance(routes, list) else None


def add_route(client, server_id, domain, port, insert_first=True):
    """Create a new route for domain, at the front or appended.

    A server without a routes list gets a fresh one holding just this route.
    """
    route = build_route(domain, port)
    path = routes_path(server_id)
    if get_routes(client, server_id) is None:
        # key missing (PUT) or present but not a list (PATCH)
        if client.exists(path):
            client.patch(path, [route])
        else:
            client.put(path, [route])
    elif insert_first:
        # PUT on an array index inserts
        client.put(routes_path(server_id, 0), route)
    else:
        client.post(path, route)
    logger.info(f"Added route {domain} → {UPSTREAM_HOST}:{port}")
    return route


def replace_route_at(client, server_id, index, domain, port):
    """Overwrite the whole route at index so no stale fields survive."""
    route = build_route(domain, port)
    client.patch(routes_path(server_id, index), route)
    logger.info(f"Replaced route #{index} {domain} → {UPSTREAM_HOST}:{port}")
    return route
