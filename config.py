from __future__ import annotations
import os
import re


def parse_duration(text: str) -> float | None:
    """Parse a TTL such as ``60``, ``30s``, ``5m`` or ``1h`` into seconds.

    ``disabled``, ``off``, ``none`` and ``0`` turn caching off and yield ``None``.
    """
    value = (text or "").strip().lower()
    if value in ("disabled", "off", "none", "false", "0"):
        return None
    m = re.fullmatch(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h)?", value)
    if not m:
        raise ValueError(f"invalid duration: {text!r}")
    number = float(m.group(1))
    unit = m.group(2) or "s"
    seconds = number * {"ms": 0.001, "s": 1, "m": 60, "h": 3600}[unit]
    return seconds if seconds > 0 else None


# Web Configuration
HOST = os.getenv('CFIP_HOST', '0.0.0.0')
PORT = int(os.getenv('CFIP_PORT', '8080'))

# Cache lifetime of the aggregated list; "disabled" aggregates on every request
CACHE_TTL = parse_duration(os.getenv('CACHE_TTL', '60s'))

# Upstream fetching
FETCH_TIMEOUT = float(os.getenv('FETCH_TIMEOUT', '10'))
FETCH_MAX_REDIRECTS = int(os.getenv('FETCH_MAX_REDIRECTS', '5'))
FETCH_WORKERS = max(1, int(os.getenv('FETCH_WORKERS', '5')))
USER_AGENT = os.getenv('USER_AGENT', 'cfip-aggregator/0.1')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# Debug switch for requests/urllib3 verbose logs
# Set environment variable HTTP_DEBUG to 1/true/yes to enable without editing this file
ENABLE_HTTP_DEBUG = (
    os.getenv('HTTP_DEBUG', '0').lower() in ('1', 'true', 'yes', 'on')
)

# Dump raw request/response headers to stdout as well (very noisy; needs HTTP_DEBUG)
# Enable by env var HTTP_DEBUG_HEADERS=1/true/yes/on
ENABLE_HTTP_DEBUG_HEADERS = (
    os.getenv('HTTP_DEBUG_HEADERS', '0').lower() in ('1', 'true', 'yes', 'on')
)
