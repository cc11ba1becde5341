"""Render-ready projection of the tracker state."""

from fund_tracker.models.fund import FundRecord, TrackerState
from fund_tracker.models.view import FundRecordResponse, TrackerView


def _to_response(record: FundRecord) -> FundRecordResponse:
    return FundRecordResponse(
        code=record.code,
        status=record.status,
        data=record.data,
        error_message=record.error_message,
        timestamp=record.timestamp,
    )


def project_view(
    state: TrackerState,
    capacity: int,
    querying: bool = False,
    refreshing: bool = False,
) -> TrackerView:
    """Snapshot zone newest first, refresh zone in the order funds were added."""
    snapshot = sorted(state.snapshot.values(), key=lambda r: r.timestamp, reverse=True)
    refresh = sorted(state.refresh.values(), key=lambda r: r.timestamp)
    return TrackerView(
        snapshot=[_to_response(r) for r in snapshot],
        refresh=[_to_response(r) for r in refresh],
        refresh_capacity_remaining=max(capacity - len(state.refresh), 0),
        querying=querying,
        refreshing=refreshing,
    )
