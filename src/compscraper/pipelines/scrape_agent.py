"""
Scrape Agent

Fallback orchestration over an injected, ordered list of source adapters.
Adapters are tried one at a time; the chain stops at the first adapter that
returns records. Adapter failures become caveats and never leave the agent.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from src.compscraper.exceptions import AdapterTimeoutError
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.models.records import RawRecord
from src.compscraper.scrapers.base import AdapterResult, SourceAdapter, SourceTier
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)

HEURISTIC_CAVEAT = (
    "Results are heuristic estimates synthesized from market profiles, not scraped listings"
)
NO_RESULTS_CAVEAT = "No properties found for query"


@dataclass
class AgentResult:
    """
    Outcome of one agent run.

    Attributes:
        records: Records from the tier that ended the chain
        caveats: Caveats accumulated across every adapter tried
        source: Tier that produced the records (None when no records)
        adapter_name: Adapter that produced the records
        attempts: Names of the adapters invoked, in order
    """

    records: List[RawRecord] = field(default_factory=list)
    caveats: List[str] = field(default_factory=list)
    source: Optional[SourceTier] = None
    adapter_name: Optional[str] = None
    attempts: List[str] = field(default_factory=list)


class ScrapeAgent:
    """
    Runs source adapters in priority order with bounded waits.

    Each adapter call runs on a worker thread. The agent waits at most the
    adapter's timeout (or the agent-level override) and polls an optional
    cancellation event while waiting. An abandoned call keeps running in the
    background but its result is discarded.
    """

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        timeout: Optional[float] = None,
        poll_interval: float = 0.05,
    ):
        """
        Initialize the agent.

        Args:
            adapters: Adapters in fallback priority order
            timeout: Override applied to every adapter call
            poll_interval: Seconds between cancellation checks while waiting
        """
        if not adapters:
            raise ValueError("ScrapeAgent requires at least one adapter")
        self.adapters = list(adapters)
        self.timeout = timeout
        self.poll_interval = poll_interval

    def run(self, query: ScrapeQuery, cancel_event: Optional[threading.Event] = None) -> AgentResult:
        """
        Try adapters until one returns records.

        Args:
            query: Scrape query, passed unchanged to every adapter
            cancel_event: When set, the current and remaining adapters are abandoned

        Returns:
            AgentResult with the winning tier's records and all caveats
        """
        result = AgentResult()

        for adapter in self.adapters:
            result.attempts.append(adapter.name)
            logger.info("adapter_invoked", adapter=adapter.name, tier=adapter.tier.value)

            try:
                outcome = self._invoke(adapter, query, cancel_event)
            except Exception as e:
                reason = str(e) or type(e).__name__
                result.caveats.append(f"{adapter.name} failed: {reason}")
                logger.warning(
                    "adapter_failed",
                    adapter=adapter.name,
                    error=reason,
                    error_type=type(e).__name__,
                )
                continue

            result.caveats.extend(outcome.caveats)

            if outcome.records:
                if adapter.tier == SourceTier.HEURISTIC:
                    result.caveats.append(HEURISTIC_CAVEAT)
                result.records = list(outcome.records)
                result.source = adapter.tier
                result.adapter_name = adapter.name
                logger.info(
                    "adapter_succeeded",
                    adapter=adapter.name,
                    tier=adapter.tier.value,
                    records=len(result.records),
                )
                return result

            result.caveats.append(f"{adapter.name} returned no properties")
            logger.info("adapter_returned_no_records", adapter=adapter.name)

        result.caveats.append(NO_RESULTS_CAVEAT)
        logger.warning("scrape_agent_no_records", attempts=result.attempts)
        return result

    def _invoke(
        self,
        adapter: SourceAdapter,
        query: ScrapeQuery,
        cancel_event: Optional[threading.Event],
    ) -> AdapterResult:
        """
        Call ``adapter.search`` with a bounded wait.

        Raises:
            AdapterTimeoutError: On timeout or cancellation
            Exception: Whatever the adapter raised
        """
        if cancel_event is not None and cancel_event.is_set():
            raise AdapterTimeoutError(adapter.name, "cancelled")

        timeout = self.timeout if self.timeout is not None else adapter.timeout
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"adapter-{adapter.name}")
        try:
            future = executor.submit(adapter.search, query)
            deadline = time.monotonic() + timeout
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    future.cancel()
                    raise AdapterTimeoutError(adapter.name, f"timed out after {timeout:g}s")

                done, _ = wait([future], timeout=min(self.poll_interval, remaining))
                if done:
                    outcome = future.result()
                    if not isinstance(outcome, AdapterResult):
                        raise TypeError(
                            f"{adapter.name} returned {type(outcome).__name__}, expected AdapterResult"
                        )
                    return outcome

                if cancel_event is not None and cancel_event.is_set():
                    future.cancel()
                    raise AdapterTimeoutError(adapter.name, "cancelled")
        finally:
            executor.shutdown(wait=False)
