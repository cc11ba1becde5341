"""Pydantic schemas for API request/response."""

from pydantic import BaseModel

from fund_tracker.models.view import TrackerView


class QueryRequest(BaseModel):
    text: str


class QueryResponse(TrackerView):
    queried: list[str]
    rejected: list[str]
