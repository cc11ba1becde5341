"""Fund state store: the snapshot and refresh zones and every transition between them.

Transitions are pure functions ``(state, action, now) -> state``. ``FundStateStore``
owns the current state, stamps each transition with a strictly increasing timestamp
and notifies subscribers after every installed state. It never performs I/O.
"""

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from fund_tracker.config import REFRESH_ZONE_CAPACITY
from fund_tracker.models.estimate import EstimateResult
from fund_tracker.models.fund import FundRecord, Status, TrackerState, Zone, check_invariants

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "fund not found"

Listener = Callable[[TrackerState], None]


@dataclass(frozen=True)
class UpsertLoading:
    zone: Zone
    codes: Sequence[str]
    tickets: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class MarkLoading:
    """Re-poll existing records; keeps each record's timestamp."""

    zone: Zone
    codes: Sequence[str]
    tickets: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ApplyResults:
    zone: Zone
    codes: Sequence[str]
    results: Sequence[EstimateResult]
    update_time: str
    refresh_timestamp: bool = True
    tickets: Mapping[str, int] | None = None


@dataclass(frozen=True)
class ApplyBatchFailure:
    zone: Zone
    codes: Sequence[str]
    message: str
    tickets: Mapping[str, int] | None = None


@dataclass(frozen=True)
class Migrate:
    from_zone: Zone
    code: str
    capacity: int = REFRESH_ZONE_CAPACITY


@dataclass(frozen=True)
class Clear:
    zone: Zone


def _pending_records(
    state: TrackerState,
    zone: Zone,
    codes: Sequence[str],
    tickets: Mapping[str, int] | None,
) -> list[tuple[Zone, FundRecord]]:
    """Records a resolution may write to, with the zone each one lives in now.

    Without tickets only records of ``zone`` qualify. With tickets a record qualifies
    wherever it lives, as long as it still holds the ticket of the request being
    resolved; cleared or re-requested records are left alone.
    """
    pending = []
    for code in codes:
        current = state.locate(code)
        if current is None:
            continue
        if tickets is None and current is not zone:
            continue
        record = state.zone(current)[code]
        if tickets is not None and record.ticket != tickets.get(code):
            continue
        pending.append((current, record))
    return pending


def _write(state: TrackerState, updates: list[tuple[Zone, FundRecord]]) -> TrackerState:
    for zone in Zone:
        records = {record.code: record for z, record in updates if z is zone}
        if records:
            state = state.with_zone(zone, {**state.zone(zone), **records})
    return state


def _upsert_loading(state: TrackerState, action: UpsertLoading, now: int) -> TrackerState:
    other = state.zone(action.zone.other)
    records = dict(state.zone(action.zone))
    for code in action.codes:
        if code in other:
            continue
        records[code] = FundRecord(
            code=code,
            status=Status.LOADING,
            timestamp=now,
            ticket=action.tickets.get(code, 0),
        )
    return state.with_zone(action.zone, records)


def _mark_loading(state: TrackerState, action: MarkLoading, now: int) -> TrackerState:
    records = dict(state.zone(action.zone))
    for code in action.codes:
        record = records.get(code)
        if record is None:
            continue
        records[code] = FundRecord(
            code=code,
            status=Status.LOADING,
            timestamp=record.timestamp,
            ticket=action.tickets.get(code, record.ticket),
        )
    return state.with_zone(action.zone, records)


def _apply_results(state: TrackerState, action: ApplyResults, now: int) -> TrackerState:
    by_code = {result.fund_code: result for result in action.results}
    updates = []
    for zone, record in _pending_records(state, action.zone, action.codes, action.tickets):
        # Records that moved zones keep the timestamp their migration assigned
        if action.refresh_timestamp and zone is action.zone:
            timestamp = now
        else:
            timestamp = record.timestamp
        result = by_code.get(record.code)
        if result is None:
            updated = FundRecord(
                code=record.code,
                status=Status.ERROR,
                error_message=NOT_FOUND_MESSAGE,
                timestamp=timestamp,
                ticket=record.ticket,
            )
        else:
            updated = FundRecord(
                code=record.code,
                status=Status.SUCCESS,
                data=result.to_snapshot(action.update_time),
                timestamp=timestamp,
                ticket=record.ticket,
            )
        updates.append((zone, updated))
    return _write(state, updates)


def _apply_batch_failure(state: TrackerState, action: ApplyBatchFailure, now: int) -> TrackerState:
    updates = [
        (
            zone,
            FundRecord(
                code=record.code,
                status=Status.ERROR,
                error_message=action.message,
                timestamp=record.timestamp,
                ticket=record.ticket,
            ),
        )
        for zone, record in _pending_records(state, action.zone, action.codes, action.tickets)
    ]
    return _write(state, updates)


def _migrate(state: TrackerState, action: Migrate, now: int) -> TrackerState:
    to_zone = action.from_zone.other
    source = state.zone(action.from_zone)
    target = state.zone(to_zone)
    record = source.get(action.code)
    if record is None:
        return state
    if to_zone is Zone.REFRESH and len(target) >= action.capacity:
        return state

    source = {code: r for code, r in source.items() if code != action.code}
    target = {**target, action.code: record.model_copy(update={"timestamp": now})}
    return state.with_zone(action.from_zone, source).with_zone(to_zone, target)


def _clear(state: TrackerState, action: Clear, now: int) -> TrackerState:
    if not state.zone(action.zone):
        return state
    return state.with_zone(action.zone, {})


_REDUCERS = {
    UpsertLoading: _upsert_loading,
    MarkLoading: _mark_loading,
    ApplyResults: _apply_results,
    ApplyBatchFailure: _apply_batch_failure,
    Migrate: _migrate,
    Clear: _clear,
}


def reduce(state: TrackerState, action, now: int) -> TrackerState:
    """Return the state after ``action``; ``now`` stamps any record written."""
    return _REDUCERS[type(action)](state, action, now)


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class FundStateStore:
    """Owns the tracker state. Callers only read it and dispatch actions."""

    def __init__(
        self,
        capacity: int = REFRESH_ZONE_CAPACITY,
        clock: Callable[[], int] = _wall_clock_ms,
    ):
        self.capacity = capacity
        self._state = TrackerState()
        self._clock = clock
        self._last_timestamp = 0
        self._listeners: list[Listener] = []

    @property
    def state(self) -> TrackerState:
        return self._state

    def _now(self) -> int:
        self._last_timestamp = max(self._clock(), self._last_timestamp + 1)
        return self._last_timestamp

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action) -> TrackerState:
        new_state = reduce(self._state, action, self._now())
        if new_state is self._state:
            return new_state
        check_invariants(new_state, self.capacity)
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)
        return new_state

    def upsert_loading(
        self, zone: Zone, codes: Sequence[str], tickets: Mapping[str, int] | None = None
    ) -> None:
        self.dispatch(UpsertLoading(zone, tuple(codes), dict(tickets or {})))

    def mark_loading(
        self, zone: Zone, codes: Sequence[str], tickets: Mapping[str, int] | None = None
    ) -> None:
        self.dispatch(MarkLoading(zone, tuple(codes), dict(tickets or {})))

    def apply_results(
        self,
        zone: Zone,
        codes: Sequence[str],
        results: Sequence[EstimateResult],
        update_time: str,
        refresh_timestamp: bool = True,
        tickets: Mapping[str, int] | None = None,
    ) -> None:
        self.dispatch(
            ApplyResults(zone, tuple(codes), tuple(results), update_time, refresh_timestamp, tickets)
        )

    def apply_batch_failure(
        self,
        zone: Zone,
        codes: Sequence[str],
        message: str,
        tickets: Mapping[str, int] | None = None,
    ) -> None:
        self.dispatch(ApplyBatchFailure(zone, tuple(codes), message, tickets))

    def migrate(self, from_zone: Zone, code: str) -> bool:
        """Move ``code`` to the other zone. Returns False when nothing moved."""
        before = self._state
        return self.dispatch(Migrate(from_zone, code, self.capacity)) is not before

    def clear(self, zone: Zone) -> None:
        before = self._state
        if self.dispatch(Clear(zone)) is not before:
            logger.info(f"Cleared {zone.value} zone")
