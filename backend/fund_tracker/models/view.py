"""Render-ready tracker view models."""

from pydantic import BaseModel

from fund_tracker.models.fund import EstimateSnapshot, Status


class FundRecordResponse(BaseModel):
    code: str
    status: Status
    data: EstimateSnapshot | None = None
    error_message: str | None = None
    timestamp: int


class TrackerView(BaseModel):
    snapshot: list[FundRecordResponse]
    refresh: list[FundRecordResponse]
    refresh_capacity_remaining: int
    querying: bool
    refreshing: bool
