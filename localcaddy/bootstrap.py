import logging

from .admin import config_path

logger = logging.getLogger(__name__)

INTERNAL_ISSUER = {"module": "internal"}


def internal_policy(domain):
    """TLS automation policy issuing a locally-trusted cert for domain"""
    return {"subjects": [domain], "issuers": [dict(INTERNAL_ISSUER)]}


def seed_config(options, domain):
    """Full config for an empty Caddy: our server plus an internal TLS policy."""
    return {
        "apps": {
            "http": {
                "servers": {
                    options.server_id: {
                        "listen": list(options.listen),
                        "routes": [],
                    }
                }
            },
            "tls": {
                "automation": {
                    "policies": [internal_policy(domain)]
                }
            },
        }
    }


def ensure_path(client, path, payload):
    """Create path with payload if a GET on it fails. Returns True if it wrote."""
    if client.exists(path):
        return False
    client.put(path, payload)
    logger.debug(f"Created {path}")
    return True


def merge_listen(current, desired):
    """Ordered union: existing addresses first, missing desired ones appended."""
    return list(dict.fromkeys(list(current) + list(desired)))


def has_internal_policy(policies, domain):
    """True if some policy lists domain and uses the internal issuer"""
    for policy in policies or []:
        if not isinstance(policy, dict):
            continue
        subjects = policy.get("subjects")
        issuers = policy.get("issuers")
        if not isinstance(subjects, list) or domain not in subjects:
            continue
        if isinstance(issuers, list) and any(
            isinstance(i, dict) and i.get("module") == "internal" for i in issuers
        ):
            return True
    return False


def ensure_listen(client, server_path, options):
    """Make sure the server listens on every desired address, keeping any others."""
    listen_path = f"{server_path}/listen"
    current = client.get(listen_path)
    if not isinstance(current, list):
        current = None
    merged = merge_listen(current or [], options.listen)
    if merged == (current or []):
        return False

    if current is None:
        client.put(listen_path, merged)
    else:
        client.patch(listen_path, merged)
    logger.info(f"Updated '{options.server_id}' listen → {', '.join(merged)}")
    return True


def ensure_automatic_https(client, server_path, options):
    """Clear automatic_https.disable if something turned it on"""
    auto_path = f"{server_path}/automatic_https"
    auto = client.get(auto_path)
    if isinstance(auto, dict) and auto.get("disable") is True:
        client.patch(auto_path, {**auto, "disable": False})
        logger.info(f"Re-enabled automatic HTTPS on '{options.server_id}'")
        return True
    return False


def ensure_tls_policy(client, domain):
    """Ensure an internal-issuer automation policy covers domain.

    Containers are created only when missing; unrelated policies are left alone.
    """
    ensure_path(client, config_path("apps"), {})

    tls_path = config_path("apps", "tls")
    if not ensure_path(client, tls_path, {"automation": {"policies": []}}):
        ensure_path(client, config_path("apps", "tls", "automation"), {"policies": []})
        ensure_path(client, config_path("apps", "tls", "automation", "policies"), [])

    policies_path = config_path("apps", "tls", "automation", "policies")
    policies = client.get(policies_path)
    if has_internal_policy(policies if isinstance(policies, list) else [], domain):
        logger.info(f"TLS automation policy already present for {domain}")
        return False

    client.post(policies_path, internal_policy(domain))
    logger.info(f"Added TLS automation policy (internal) for {domain}")
    return True


def ensure_caddy_server_exists(client, options, domain):
    """Bootstrap the HTTP server and TLS policy we need (HTTPS-first).

    Safe to run repeatedly: a second run against the same config performs
    no writes. Write failures propagate.
    """
    root = client.get(config_path())
    if not root:
        client.load(seed_config(options, domain))
        logger.info(
            f"Initialized Caddy config; server '{options.server_id}' on "
            f"{', '.join(options.listen)}; TLS internal for {domain}"
        )
        return

    server_path = config_path("apps", "http", "servers", options.server_id)
    if not client.exists(server_path):
        ensure_path(client, config_path("apps"), {})
        ensure_path(client, config_path("apps", "http"), {"servers": {}})
        ensure_path(client, config_path("apps", "http", "servers"), {})
        client.put(server_path, {"listen": list(options.listen), "routes": []})
        logger.info(f"Created server '{options.server_id}' on {', '.join(options.listen)}")
    else:
        ensure_listen(client, server_path, options)
        ensure_automatic_https(client, server_path, options)

    ensure_tls_policy(client, domain)
