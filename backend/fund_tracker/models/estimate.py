"""Wire models for the upstream realtime-estimate API."""

from pydantic import BaseModel, ConfigDict, Field

from fund_tracker.models.fund import ContributionEntry, EstimateSnapshot


class ContributionItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stock_code: str = Field(alias="stockCode")
    stock_name: str = Field(alias="stockName")
    ratio: float  # position ratio (%)
    change_percent: float = Field(alias="changePercent")
    contribution: float


class EstimateResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fund_code: str = Field(alias="fundCode")
    fund_name: str = Field(alias="fundName")
    estimated_change: float = Field(alias="estimatedChange")
    total_position_ratio: float = Field(alias="totalPositionRatio")
    position_date: str = Field(alias="positionDate")
    contributions: list[ContributionItem] = []

    def to_snapshot(self, update_time: str) -> EstimateSnapshot:
        return EstimateSnapshot(
            fund_code=self.fund_code,
            fund_name=self.fund_name,
            estimated_change=self.estimated_change,
            total_position_ratio=self.total_position_ratio,
            position_date=self.position_date,
            contributions=tuple(
                ContributionEntry(
                    stock_code=c.stock_code,
                    stock_name=c.stock_name,
                    weight=c.ratio,
                    change=c.change_percent,
                    contribution=c.contribution,
                )
                for c in self.contributions
            ),
            update_time=update_time,
        )


class EstimateEnvelope(BaseModel):
    """Response envelope shared by every upstream endpoint."""

    code: int
    message: str = ""
    data: list[EstimateResult] | None = None
