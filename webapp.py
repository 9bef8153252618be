from __future__ import annotations
import logging
import http.client as http_client
import sys
from dataclasses import asdict

from flask import Blueprint, Flask, current_app, jsonify

from config import (
    CACHE_TTL,
    ENABLE_HTTP_DEBUG,
    ENABLE_HTTP_DEBUG_HEADERS,
    FETCH_MAX_REDIRECTS,
    FETCH_TIMEOUT,
    FETCH_WORKERS,
    USER_AGENT,
)
from cfip.aggregator import Aggregator, AggregationError
from cfip.fetcher import Fetcher
from cfip.ipcache import IPCache


ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

bp = Blueprint("cfip", __name__)


def setup_request_logging(dump_headers: bool = ENABLE_HTTP_DEBUG_HEADERS):
    """Enable verbose logging for outbound HTTP requests.

    Prints outbound request lines like:
    DEBUG:urllib3.connectionpool:Starting new HTTPS connection (1): stock.hostmonit.com:443
    DEBUG:urllib3.connectionpool:https://stock.hostmonit.com:443 "GET /CloudFlareYes HTTP/1.1" 200 None
    """
    # Ensure console handler exists and accepts DEBUG
    root = logging.getLogger()
    if not root.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setLevel(logging.DEBUG)
        h.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
        root.addHandler(h)
    root.setLevel(logging.DEBUG)

    # urllib3 connection logs outgoing requests lines
    logging.getLogger("urllib3").setLevel(logging.INFO)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.DEBUG)

    # very verbose HTTP headers (stdout)
    http_client.HTTPConnection.debuglevel = 1 if dump_headers else 0


def build_cache() -> IPCache:
    fetcher = Fetcher(timeout=FETCH_TIMEOUT, max_redirects=FETCH_MAX_REDIRECTS, user_agent=USER_AGENT)
    aggregator = Aggregator(fetcher, max_workers=FETCH_WORKERS)
    return IPCache(aggregator, ttl=CACHE_TTL)


def get_cache() -> IPCache:
    return current_app.extensions["ip_cache"]


def _text_headers() -> dict:
    return {
        "Content-Type": "text/plain; charset=utf-8",
        "Access-Control-Allow-Origin": "*",
    }


@bp.route("/", methods=ALL_METHODS)
def ip_list():
    cache = get_cache()
    try:
        hit = cache.lookup()
    except AggregationError as e:
        current_app.logger.error(f"[ip-list] no data to serve: {e}")
        return (f"Error: {e}", 500, _text_headers())
    headers = _text_headers()
    if hit.status is not None:
        headers["X-Cache"] = hit.status
        headers["X-Cache-Expire"] = hit.expires_iso
    return (hit.result.text, 200, headers)


@bp.route("/status", methods=["GET"])
def status():
    cache = get_cache()
    entry = cache.entry
    reports = [asdict(r) for r in entry.result.reports] if entry is not None else []
    return jsonify({"ok": True, "cache": cache.snapshot(), "sources": reports})


def create_app(cache: IPCache | None = None) -> Flask:
    app = Flask(__name__)
    app.extensions["ip_cache"] = cache or build_cache()
    app.register_blueprint(bp)
    return app


# Enable logging if switch is on
if ENABLE_HTTP_DEBUG:
    setup_request_logging()

app = create_app()
