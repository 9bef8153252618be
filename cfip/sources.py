from __future__ import annotations
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Tuple, Union


logger = logging.getLogger(__name__)

IPV4_RE = re.compile(r"\b(?:[0-9]{1,3}\.){3}[0-9]{1,3}\b")
TD_IPV4_RE = re.compile(r"<td[^>]*>\s*(\d+\.\d+\.\d+\.\d+)\s*</td>", re.IGNORECASE)


class ParseError(ValueError):
    """Body does not have the structure its source is known to publish."""


@dataclass(frozen=True)
class JsonArrayField:
    """JSON object holding a list of records, e.g. ``{"data": [{"ip": ...}]}``."""
    array: str
    field: str = "ip"


@dataclass(frozen=True)
class HtmlTableCell:
    """HTML page listing addresses in ``<td>`` cells."""


@dataclass(frozen=True)
class GenericRegex:
    """Any text; every IPv4-looking substring counts."""


SourceKind = Union[JsonArrayField, HtmlTableCell, GenericRegex]


@dataclass(frozen=True)
class Source:
    name: str
    url: str
    kind: SourceKind = GenericRegex()


DEFAULT_SOURCES: Tuple[Source, ...] = (
    Source("bestcf", "https://ipdb.api.030101.xyz/?type=bestcf", JsonArrayField("data")),
    Source("iptop", "https://ip.164746.xyz/ipTop.html", GenericRegex()),
    Source("hostmonit", "https://stock.hostmonit.com/CloudFlareYes", JsonArrayField("info")),
    Source("wetest", "https://www.wetest.vip/page/cloudflare/address_v4.html", HtmlTableCell()),
    Source("urlce", "https://api.urlce.com/cloudflare.html", GenericRegex()),
)


def extract_generic(body: str) -> List[str]:
    return IPV4_RE.findall(body or "")


def _records(body: str, kind: JsonArrayField) -> List[Any]:
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ParseError(f"not JSON: {e}") from e
    if not isinstance(payload, dict) or not isinstance(payload.get(kind.array), list):
        raise ParseError(f"missing '{kind.array}' array")
    return payload[kind.array]


def extract_json_array(body: str, kind: JsonArrayField) -> List[str]:
    ips: List[str] = []
    for item in _records(body, kind):
        if not isinstance(item, dict):
            continue
        value = item.get(kind.field)
        # the field may carry a port or a label next to the address
        if isinstance(value, str):
            ips.extend(IPV4_RE.findall(value))
    return ips


def extract_html_table(body: str) -> List[str]:
    ips: List[str] = []
    for cell in TD_IPV4_RE.findall(body or ""):
        ips.extend(IPV4_RE.findall(cell))
    return ips


def extract(body: str, source: Source) -> List[str]:
    """Pull candidate IPv4 strings out of a source body.

    The result is unfiltered and may hold duplicates. When the body no longer
    matches the source's known layout, every IPv4-looking substring of the raw
    body is returned instead.
    """
    kind = source.kind
    if isinstance(kind, JsonArrayField):
        try:
            return extract_json_array(body, kind)
        except ParseError as e:
            logger.debug(f"[extract] {source.name}: {e}; using generic match")
            return extract_generic(body)
    if isinstance(kind, HtmlTableCell):
        ips = extract_html_table(body)
        if ips:
            return ips
        logger.debug(f"[extract] {source.name}: no table cells; using generic match")
        return extract_generic(body)
    return extract_generic(body)
