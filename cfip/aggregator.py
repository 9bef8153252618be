from __future__ import annotations
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from cfip.fetcher import Fetcher, FetchError
from cfip.ipfilter import filter_routable
from cfip.sources import DEFAULT_SOURCES, Source, extract


logger = logging.getLogger(__name__)


class AggregationError(Exception):
    """The aggregation run as a whole failed; no usable result was produced."""


@dataclass(frozen=True)
class SourceReport:
    source: str
    ok: bool
    count: int = 0
    message: str = "ok"


@dataclass(frozen=True)
class AggregatedResult:
    addresses: Tuple[str, ...]
    produced_at: float
    reports: Tuple[SourceReport, ...] = field(default=())

    @property
    def text(self) -> str:
        return "\n".join(self.addresses)

    def __len__(self) -> int:
        return len(self.addresses)


class Aggregator:
    """Fetch every source, extract and filter its addresses, merge the lot.

    A failing source contributes nothing; only a failure of the run itself
    raises ``AggregationError``.
    """

    def __init__(self,
                 fetcher: Fetcher | None = None,
                 sources: Sequence[Source] = DEFAULT_SOURCES,
                 max_workers: int = 5,
                 clock=time.time):
        self.fetcher = fetcher or Fetcher()
        self.sources = tuple(sources)
        self.max_workers = max(1, max_workers)
        self.clock = clock

    def __call__(self) -> AggregatedResult:
        return self.aggregate()

    def collect(self, source: Source) -> Tuple[List[str], SourceReport]:
        try:
            logger.info(f"[aggregate] fetching {source.name}: {source.url}")
            body = self.fetcher.fetch(source.url)
            ips = filter_routable(extract(body, source))
        except FetchError as e:
            logger.warning(f"[aggregate] {source.name} failed: {e.reason}")
            return [], SourceReport(source.name, False, 0, f"FetchError: {e.reason}")
        except Exception as e:  # noqa: BLE001
            logger.exception(f"[aggregate] {source.name} extraction failed")
            return [], SourceReport(source.name, False, 0, f"{type(e).__name__}: {e}")
        logger.info(f"[aggregate] {source.name}: {len(ips)} addresses")
        return ips, SourceReport(source.name, True, len(ips), "ok")

    def aggregate(self, sources: Sequence[Source] | None = None) -> AggregatedResult:
        todo = tuple(sources) if sources is not None else self.sources
        try:
            if not todo:
                outcomes = []
            elif self.max_workers == 1 or len(todo) == 1:
                outcomes = [self.collect(s) for s in todo]
            else:
                with ThreadPoolExecutor(max_workers=min(self.max_workers, len(todo)),
                                        thread_name_prefix="cfip-fetch") as pool:
                    outcomes = list(pool.map(self.collect, todo))
            merged = sorted({ip for ips, _ in outcomes for ip in ips})
        except Exception as e:
            raise AggregationError(f"{type(e).__name__}: {e}") from e
        result = AggregatedResult(
            addresses=tuple(merged),
            produced_at=self.clock(),
            reports=tuple(report for _, report in outcomes),
        )
        ok = sum(1 for r in result.reports if r.ok)
        logger.info(f"[aggregate] done: {len(result)} unique addresses from {ok}/{len(todo)} sources")
        return result
