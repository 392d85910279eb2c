import json
import logging
import os
import re

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"

# TLDs the OS won't resolve to loopback on its own
MANUAL_RESOLUTION_TLDS = (".local",)

_SLUG_INVALID = re.compile(r"[^a-z0-9-]+")


def slugify(name):
    """Lowercase, collapse runs of characters outside [a-z0-9-] into '-', strip edge dashes.

    "My App!" -> "my-app", "@scope/pkg" -> "scope-pkg"
    """
    return _SLUG_INVALID.sub("-", str(name).lower()).strip("-")


def slug_from_folder(cwd=None):
    """Slug derived from the current folder name"""
    path = os.path.normpath(cwd if cwd is not None else os.getcwd())
    return slugify(os.path.basename(path))


def slug_from_pkg(cwd=None):
    """Slug derived from the manifest "name" field.

    Falls back to the folder name when the manifest is missing, unreadable,
    not a JSON object, or has no usable name. Never raises.
    """
    directory = cwd if cwd is not None else os.getcwd()
    manifest_path = os.path.join(directory, MANIFEST_FILE)
    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            manifest = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug(f"Could not read {manifest_path}: {e}. Using folder name")
        return slug_from_folder(directory)

    name = manifest.get("name") if isinstance(manifest, dict) else None
    if not isinstance(name, str):
        logger.debug(f"No string 'name' in {manifest_path}. Using folder name")
        return slug_from_folder(directory)

    slug = slugify(name)
    if not slug:
        logger.debug(f"Manifest name {name!r} has no usable characters. Using folder name")
        return slug_from_folder(directory)
    return slug


def compute_domain(domain=None, name_source="folder", tld="localhost", cwd=None):
    """Compute the final domain name.

    An explicit domain is returned unchanged; otherwise build
    "{slug}.{tld}" from the folder name or the manifest name.
    """
    if domain:
        return domain
    base = slug_from_pkg(cwd) if name_source == "pkg" else slug_from_folder(cwd)
    return f"{base}.{tld}"


def needs_hosts_entry(domain):
    return domain.endswith(MANUAL_RESOLUTION_TLDS)


def _hosts_hint(domain, hosts_file):
    return f"    sudo bash -c \"echo '127.0.0.1 {domain}' >> {hosts_file}\""


def check_hosts_for_local(domain, hosts_file="/etc/hosts"):
    """Advisory check that a .local domain has a hosts file entry.

    Returns True when no entry is needed or one is present. Only ever
    warns; never raises.
    """
    if not needs_hosts_entry(domain):
        return True

    try:
        with open(hosts_file, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except OSError as e:
        logger.warning(
            f"⚠️  Could not read {hosts_file} to verify {domain} ({e}). If requests fail, add:\n"
            f"{_hosts_hint(domain, hosts_file)}"
        )
        return False

    for line in lines:
        if line.strip().startswith("#"):
            continue
        if domain in line.split()[1:]:
            logger.debug(f"Found {hosts_file} entry for {domain}")
            return True

    logger.warning(f"⚠️  Missing {hosts_file} entry for {domain}. Add it with:\n{_hosts_hint(domain, hosts_file)}")
    return False
