"""Financial health score models."""

from pydantic import BaseModel, ConfigDict, Field


class HealthBreakdown(BaseModel):
    """Sub-scores; each is clamped to its own maximum."""
    model_config = ConfigDict(frozen=True)

    savings_rate: int = Field(default=0, ge=0, le=30)
    budget_adherence: int = Field(default=0, ge=0, le=25)
    emergency_fund: int = Field(default=0, ge=0, le=20)
    spending_consistency: int = Field(default=0, ge=0, le=15)
    debt_ratio: int = Field(default=0, ge=0, le=10)

    @property
    def total(self) -> int:
        return (
            self.savings_rate
            + self.budget_adherence
            + self.emergency_fund
            + self.spending_consistency
            + self.debt_ratio
        )


class BreakdownDetail(BaseModel):
    """One row of the score breakdown, ready for display."""

    name: str
    score: int
    max_score: int
    tip: str


class HealthScore(BaseModel):
    """Overall 0-100 score with grade and encouragement."""

    score: int = Field(..., ge=0, le=100)
    breakdown: HealthBreakdown
    grade: str
    message: str
