import logging
import socket

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 0.35  # seconds; runs in the startup path


def is_port_active(port, host="127.0.0.1", timeout=DEFAULT_TIMEOUT):
    """True if something accepts TCP connections on host:port.

    The connect timeout lives on the socket itself, so there is one outcome
    and nothing left pending once it returns. A timeout counts as inactive.
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            pass
    except OSError as e:
        logger.debug(f"Port {host}:{port} not active: {e}")
        return False
    logger.debug(f"Port {host}:{port} active")
    return True
