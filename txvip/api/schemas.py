from pydantic import BaseModel, Field
from typing import Optional


class IngestIn(BaseModel):
    round_id: int = Field(ge=0)
    d1: int = Field(ge=1, le=6)
    d2: int = Field(ge=1, le=6)
    d3: int = Field(ge=1, le=6)
    md5: Optional[str] = None


class PredictOut(BaseModel):
    prediction_id: int | None
    session: int | None
    dice: str
    total: int
    result: str
    next_session: int | None
    predict: str
    confidence: str
    probability: float
    rationale: str
    pattern: str
    diagnostics: dict


class RunItem(BaseModel):
    side: str
    length: int


class StatsOut(BaseModel):
    total_samples: int
    tai_count: int
    xiu_count: int
    current_streak: int
    streak_side: str | None
    recent20_tai: int
    recent20_xiu: int
    recent_runs: list[RunItem]
    transition: list[list[float]]
    counts: list[list[int]]
    p_value_row: dict[str, float]
    entropy: float


class RoundItem(BaseModel):
    round_id: int
    ts: str
    dice: list[int]
    total: int
    label: str
    md5: str | None
    md5_random: bool | None


class HistoryOut(BaseModel):
    count: int
    history: list[RoundItem]


class AdviceOut(BaseModel):
    predict: str
    probability: float
    kelly_fraction: float
    advice: str


class PredictionItem(BaseModel):
    id: int
    target_round: int | None
    label_pred: str
    confidence: float
    p_tai: float
    actual_label: str | None
    correct: bool | None
    ts: str
    resolved_ts: str | None


class SummaryOut(BaseModel):
    wins: int
    losses: int
    total: int
    winrate: float
