"""Fund record and tracker state models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Status(str, Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class Zone(str, Enum):
    SNAPSHOT = "snapshot"
    REFRESH = "refresh"

    @property
    def other(self) -> "Zone":
        return Zone.REFRESH if self is Zone.SNAPSHOT else Zone.SNAPSHOT


class InvariantViolation(RuntimeError):
    pass


class ContributionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    stock_code: str
    stock_name: str
    weight: float  # position weight (%)
    change: float  # live price change (%)
    contribution: float  # contribution to fund change (%)


class EstimateSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    fund_code: str
    fund_name: str
    estimated_change: float
    total_position_ratio: float
    position_date: str
    contributions: tuple[ContributionEntry, ...] = ()
    update_time: str


class FundRecord(BaseModel):
    """State of one fund code inside one zone.

    ``data`` is present iff the status is success, ``error_message`` iff error.
    ``timestamp`` only orders records for display. ``ticket`` identifies the
    request that last moved the record to loading.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    status: Status
    data: EstimateSnapshot | None = None
    error_message: str | None = None
    timestamp: int
    ticket: int = 0


class TrackerState(BaseModel):
    """The two zone mappings. Never mutated in place; every change builds a new state."""

    model_config = ConfigDict(frozen=True)

    snapshot: dict[str, FundRecord] = {}
    refresh: dict[str, FundRecord] = {}

    def zone(self, zone: Zone) -> dict[str, FundRecord]:
        return self.snapshot if zone is Zone.SNAPSHOT else self.refresh

    def with_zone(self, zone: Zone, records: dict[str, FundRecord]) -> "TrackerState":
        return self.model_copy(update={zone.value: records})

    def locate(self, code: str) -> Zone | None:
        if code in self.snapshot:
            return Zone.SNAPSHOT
        if code in self.refresh:
            return Zone.REFRESH
        return None


def check_invariants(state: TrackerState, capacity: int) -> None:
    """Raise InvariantViolation if the state breaks a zone or record invariant."""
    shared = state.snapshot.keys() & state.refresh.keys()
    if shared:
        raise InvariantViolation(f"codes present in both zones: {sorted(shared)}")
    if len(state.refresh) > capacity:
        raise InvariantViolation(
            f"refresh zone holds {len(state.refresh)} records, capacity is {capacity}"
        )
    for zone in Zone:
        for code, record in state.zone(zone).items():
            if record.code != code:
                raise InvariantViolation(f"record keyed {code} carries code {record.code}")
            if (record.data is not None) != (record.status is Status.SUCCESS):
                raise InvariantViolation(f"{code}: data does not match status {record.status.value}")
            if (record.error_message is not None) != (record.status is Status.ERROR):
                raise InvariantViolation(f"{code}: error message does not match status {record.status.value}")
