"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fund_tracker.api.tracker_routes import router as tracker_router
from fund_tracker.config import CORS_ALLOW_ORIGINS, REFRESH_ZONE_CAPACITY
from fund_tracker.services.estimate_client import EstimateClient
from fund_tracker.services.store import FundStateStore
from fund_tracker.services.tracker import FundTracker


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = EstimateClient()
    app.state.tracker = FundTracker(
        FundStateStore(capacity=REFRESH_ZONE_CAPACITY), client.fetch_estimates
    )
    yield
    await client.aclose()


app = FastAPI(title="Fund Tracker", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tracker_router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}
