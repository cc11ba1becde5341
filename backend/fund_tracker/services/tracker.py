"""Query orchestration for the snapshot and refresh zones.

Drives store transitions around estimate fetches. Fetch failures never escape: they
are recorded on the affected funds as errors. Overlapping operations are not
serialized; instead each request stamps the records it loads with a ticket and a
resolution only lands on records still holding that ticket, so the most recently
issued request wins per fund.
"""

import itertools
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from fund_tracker.models.estimate import EstimateResult
from fund_tracker.models.fund import Zone
from fund_tracker.services.estimate_client import NETWORK_ERROR_MESSAGE, EstimateFetchError
from fund_tracker.services.store import FundStateStore

logger = logging.getLogger(__name__)

Fetcher = Callable[[list[str]], Awaitable[list[EstimateResult]]]


def _update_time() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class FundTracker:
    """Coordinates batch queries, refreshes and zone moves against a FundStateStore."""

    def __init__(self, store: FundStateStore, fetch: Fetcher):
        self.store = store
        self._fetch = fetch
        self._tickets = itertools.count(1)
        self._queries_in_flight = 0
        self._refreshes_in_flight = 0

    @property
    def querying(self) -> bool:
        return self._queries_in_flight > 0

    @property
    def refreshing(self) -> bool:
        return self._refreshes_in_flight > 0

    def _issue_tickets(self, codes: list[str]) -> dict[str, int]:
        return {code: next(self._tickets) for code in codes}

    async def _resolve(
        self,
        zone: Zone,
        codes: list[str],
        tickets: dict[str, int],
        refresh_timestamp: bool,
    ) -> None:
        try:
            results = await self._fetch(codes)
        except EstimateFetchError as e:
            logger.error(f"Estimate fetch for {len(codes)} funds failed: {e.message}")
            self.store.apply_batch_failure(zone, codes, e.message, tickets)
            return
        except Exception as e:
            logger.exception(f"Unexpected error fetching estimates for {codes}: {e}")
            self.store.apply_batch_failure(zone, codes, NETWORK_ERROR_MESSAGE, tickets)
            return

        self.store.apply_results(
            zone, codes, results, _update_time(), refresh_timestamp, tickets
        )

    async def submit_batch(self, codes: list[str]) -> list[str]:
        """Query ``codes`` into the snapshot zone.

        Codes already tracked in the refresh zone are left untouched. Returns the
        codes that were actually queried.
        """
        refresh = self.store.state.refresh
        unique = list(dict.fromkeys(codes))
        queried = [code for code in unique if code not in refresh]
        skipped = len(unique) - len(queried)
        if not queried:
            logger.info(f"All {skipped} codes already tracked for refresh, nothing to query")
            return []

        tickets = self._issue_tickets(queried)
        self.store.upsert_loading(Zone.SNAPSHOT, queried, tickets)
        logger.info(f"Querying {len(queried)} funds ({skipped} skipped)")

        self._queries_in_flight += 1
        try:
            await self._resolve(Zone.SNAPSHOT, queried, tickets, refresh_timestamp=True)
        finally:
            self._queries_in_flight -= 1
        return queried

    async def refresh_all(self) -> None:
        codes = list(self.store.state.refresh)
        if not codes:
            return

        tickets = self._issue_tickets(codes)
        self.store.mark_loading(Zone.REFRESH, codes, tickets)
        logger.info(f"Refreshing {len(codes)} tracked funds")

        self._refreshes_in_flight += 1
        try:
            await self._resolve(Zone.REFRESH, codes, tickets, refresh_timestamp=False)
        finally:
            self._refreshes_in_flight -= 1

    async def retry(self, code: str) -> bool:
        """Re-fetch one refresh-zone fund. Returns False if it is not in the refresh zone."""
        if code not in self.store.state.refresh:
            return False

        tickets = self._issue_tickets([code])
        self.store.mark_loading(Zone.REFRESH, [code], tickets)
        await self._resolve(Zone.REFRESH, [code], tickets, refresh_timestamp=False)
        return True

    def add_to_refresh(self, code: str) -> bool:
        if len(self.store.state.refresh) >= self.store.capacity:
            logger.info(f"Refresh zone full, {code} stays in snapshot zone")
            return False
        return self.store.migrate(Zone.SNAPSHOT, code)

    def remove_from_refresh(self, code: str) -> bool:
        return self.store.migrate(Zone.REFRESH, code)

    def clear_snapshots(self) -> None:
        self.store.clear(Zone.SNAPSHOT)
