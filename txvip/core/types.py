from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

Label = str  # 'T' (Tài) | 'X' (Xỉu)

TAI: Label = 'T'
XIU: Label = 'X'

HIGH_THRESHOLD = 11


class EngineNotReady(Exception):
    """Raised when a forecast is requested before any round is known."""


def invert(label: Label) -> Label:
    return XIU if label == TAI else TAI


def label_of_total(total: int) -> Label:
    return TAI if total >= HIGH_THRESHOLD else XIU


def to_code(label: str | None) -> Label:
    # 'TAI' / 'Tài' / 'T' -> 'T', mọi thứ khác -> 'X'
    if label is None:
        return XIU
    return TAI if str(label).strip().upper() in ('T', 'TAI', 'TÀI') else XIU


def to_name(label: Label) -> str:
    return 'TAI' if label == TAI else 'XIU'


def render(labels: Iterable[Label]) -> str:
    return ''.join(labels)


@dataclass(frozen=True)
class Call:
    """A single forecast: side, confidence in percent and a short reason."""
    label: Label
    confidence: float
    reason: str = ''

    @property
    def prob_high(self) -> float:
        p = self.confidence / 100
        return p if self.label == TAI else 1 - p


@dataclass(frozen=True)
class Streak:
    length: int
    side: Label | None


def current_streak(labels: Sequence[Label]) -> Streak:
    if not labels:
        return Streak(0, None)
    last = labels[-1]
    n = 1
    for y in reversed(labels[:-1]):
        if y != last:
            break
        n += 1
    return Streak(n, last)


@dataclass
class Snapshot:
    """Read-only view of the retained history handed to the estimators."""
    labels: list[Label] = field(default_factory=list)
    dice: list[tuple[int, int, int]] = field(default_factory=list)
    totals: list[int] = field(default_factory=list)
    round_ids: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def pattern(self) -> str:
        return render(self.labels)

    @property
    def current_dice(self) -> tuple[int, int, int]:
        return self.dice[-1] if self.dice else (0, 0, 0)

    @property
    def current_total(self) -> int:
        return self.totals[-1] if self.totals else 0

    @property
    def current_round_id(self) -> int | None:
        return self.round_ids[-1] if self.round_ids else None

    @classmethod
    def from_rounds(cls, rounds) -> 'Snapshot':
        snap = cls()
        for r in rounds:
            snap.labels.append(to_code(r.label))
            snap.dice.append((r.d1, r.d2, r.d3))
            snap.totals.append(r.total)
            snap.round_ids.append(r.round_id)
        return snap
