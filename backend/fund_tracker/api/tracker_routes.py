"""Fund tracker API routes."""

from fastapi import APIRouter, Depends, HTTPException, Request

from fund_tracker.api.schemas import QueryRequest, QueryResponse
from fund_tracker.models.view import TrackerView
from fund_tracker.services.codes import extract_valid_codes
from fund_tracker.services.tracker import FundTracker
from fund_tracker.services.view import project_view

router = APIRouter(prefix="/api/funds", tags=["funds"])


def get_tracker(request: Request) -> FundTracker:
    """Dependency for routes; the tracker lives for the lifetime of the app."""
    return request.app.state.tracker


def _view(tracker: FundTracker) -> TrackerView:
    return project_view(
        tracker.store.state,
        tracker.store.capacity,
        querying=tracker.querying,
        refreshing=tracker.refreshing,
    )


@router.get("", response_model=TrackerView)
async def get_view(tracker: FundTracker = Depends(get_tracker)):
    return _view(tracker)


@router.post("/query", response_model=QueryResponse)
async def query_funds(req: QueryRequest, tracker: FundTracker = Depends(get_tracker)):
    """Parse free text into fund codes and query them into the snapshot zone."""
    codes, rejected = extract_valid_codes(req.text)
    if not codes:
        raise HTTPException(status_code=400, detail="No valid 6-digit fund code in query")

    queried = await tracker.submit_batch(codes)
    return QueryResponse(
        **_view(tracker).model_dump(),
        queried=queried,
        rejected=rejected,
    )


@router.post("/refresh", response_model=TrackerView)
async def refresh_all(tracker: FundTracker = Depends(get_tracker)):
    await tracker.refresh_all()
    return _view(tracker)


@router.delete("/snapshots", response_model=TrackerView)
async def clear_snapshots(tracker: FundTracker = Depends(get_tracker)):
    tracker.clear_snapshots()
    return _view(tracker)


@router.post("/{fund_code}/retry", response_model=TrackerView)
async def retry_fund(fund_code: str, tracker: FundTracker = Depends(get_tracker)):
    if not await tracker.retry(fund_code):
        raise HTTPException(status_code=404, detail="Fund not tracked for refresh")
    return _view(tracker)


@router.post("/{fund_code}/track", response_model=TrackerView)
async def add_to_refresh(fund_code: str, tracker: FundTracker = Depends(get_tracker)):
    state = tracker.store.state
    if fund_code in state.refresh:
        return _view(tracker)
    if fund_code not in state.snapshot:
        raise HTTPException(status_code=404, detail="Fund not found")
    if not tracker.add_to_refresh(fund_code):
        raise HTTPException(status_code=409, detail="Refresh list is full")
    return _view(tracker)


@router.delete("/{fund_code}/track", response_model=TrackerView)
async def remove_from_refresh(fund_code: str, tracker: FundTracker = Depends(get_tracker)):
    tracker.remove_from_refresh(fund_code)
    return _view(tracker)
