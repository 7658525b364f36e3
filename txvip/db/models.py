from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import SQLModel, Field

from txvip.core.types import label_of_total, to_name


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Round(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    round_id: int = Field(index=True, unique=True)  # "phiên"
    ts: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    md5: str | None = Field(default=None, index=True)
    md5_random: bool | None = None
    d1: int
    d2: int
    d3: int
    total: int = 0
    label: str = Field(default='XIU', index=True)  # 'TAI' | 'XIU'
    is_triple: bool = False
    source: str = "feed"

    def compute(self):
        self.total = self.d1 + self.d2 + self.d3
        self.is_triple = (self.d1 == self.d2 == self.d3)
        self.label = to_name(label_of_total(self.total))

    @property
    def dice(self) -> list[int]:
        return [self.d1, self.d2, self.d3]


class Prediction(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    target_round: int | None = Field(default=None, index=True)
    label_pred: str  # 'TAI' | 'XIU'
    confidence: float
    p_tai: float
    algo: str = "ensemble"
    version: str = "1.0.0"
    ts: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    # Resolution fields (link to actual outcome)
    actual_label: str | None = None  # 'TAI' | 'XIU'
    correct: bool | None = None
    resolved_ts: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))


class EngineState(SQLModel, table=True):
    """Rule-engine context persisted between requests (single row)."""
    id: int | None = Field(default=None, primary_key=True)
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON))
    updated_ts: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
