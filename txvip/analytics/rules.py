"""Ordered first-match-wins decision list ("AI tự học").

Every rule reads a RuleInput and may mutate the RuleContext it carries. The
context is owned by the caller (the service layer persists it between
requests); nothing here is process-global.
"""
import logging
import math
import random
from dataclasses import asdict, dataclass, field
from typing import Sequence

from txvip.analytics.patterns import describe_runs, match_bridges
from txvip.analytics.signatures import SignatureLibrary
from txvip.analytics.stats import entropy_binary, high_share
from txvip.core.types import Call, Label, TAI, XIU, current_streak, invert, label_of_total

log = logging.getLogger(__name__)

MEMORY_KEY_LEN = 1
ERROR_KEY_LEN = 3


@dataclass
class PatternStat:
    occurrences: int = 0
    correct_occurrences: int = 0
    most_recent_next: Label = TAI

    @property
    def accuracy(self) -> float:
        return self.correct_occurrences / self.occurrences if self.occurrences else 0.0


@dataclass
class LearnedPattern:
    forecast: Label
    confidence: float
    rationale: str


def error_key(labels: Sequence[Label]) -> str:
    return ','.join(labels[-ERROR_KEY_LEN:])


@dataclass
class RuleContext:
    break_tried_high: bool = False
    break_tried_low: bool = False
    learned: dict[str, LearnedPattern] = field(default_factory=dict)
    pattern_memory: dict[str, PatternStat] = field(default_factory=dict)
    error_memory: dict[str, int] = field(default_factory=dict)
    miss_streak: int = 0

    # -- persistence --
    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> 'RuleContext':
        data = data or {}
        return cls(
            break_tried_high=bool(data.get('break_tried_high', False)),
            break_tried_low=bool(data.get('break_tried_low', False)),
            learned={k: LearnedPattern(**v) for k, v in (data.get('learned') or {}).items()},
            pattern_memory={k: PatternStat(**v) for k, v in (data.get('pattern_memory') or {}).items()},
            error_memory={k: int(v) for k, v in (data.get('error_memory') or {}).items()},
            miss_streak=int(data.get('miss_streak', 0)),
        )

    # -- updates driven by new rounds, applied between forecasts --
    def remember_transition(self, labels: Sequence[Label]):
        """Record which outcome followed the prefix just before the newest round."""
        if len(labels) <= MEMORY_KEY_LEN:
            return
        key = ''.join(labels[-MEMORY_KEY_LEN - 1:-1])
        actual = labels[-1]
        stat = self.pattern_memory.get(key)
        if stat is None:
            stat = self.pattern_memory[key] = PatternStat(most_recent_next=actual)
        # every sighting counts as correct
        stat.occurrences += 1
        stat.correct_occurrences += 1
        stat.most_recent_next = actual

    def record_result(self, prior_labels: Sequence[Label], predicted: Label, actual: Label):
        if predicted == actual:
            self.miss_streak = 0
            return
        self.miss_streak += 1
        if len(prior_labels) >= ERROR_KEY_LEN:
            key = error_key(prior_labels)
            self.error_memory[key] = self.error_memory.get(key, 0) + 1

    def learn_pattern(self, labels: Sequence[Label], total: int, rng: random.Random | None = None):
        pattern = ''.join(labels)
        if len(pattern) < 4 or pattern in self.learned:
            return
        rng = rng or random.Random()
        self.learned[pattern] = LearnedPattern(
            label_of_total(total), 70 + rng.randrange(25),
            f'self-learned {describe_runs(pattern)} with total {total}')


@dataclass
class RuleInput:
    labels: Sequence[Label]
    dice: Sequence[int]
    total: int
    library: SignatureLibrary
    ctx: RuleContext

    @property
    def pattern(self) -> str:
        return ''.join(self.labels)

    @property
    def last(self) -> Label:
        return self.labels[-1]


@dataclass(frozen=True)
class RuleVerdict:
    rule: str
    call: Call


class Rule:
    name = 'rule'

    def matches(self, inp: RuleInput) -> bool:
        raise NotImplementedError

    def apply(self, inp: RuleInput) -> Call:
        raise NotImplementedError


class RiggedFeedRule(Rule):
    name = 'rigged-feed'

    def matches(self, inp):
        return len(inp.labels) > 50 and entropy_binary(high_share(inp.labels)) < 0.5

    def apply(self, inp):
        h = entropy_binary(high_share(inp.labels))
        return Call(invert(inp.last), 85, f'suspected rigged feed (entropy {h:.2f}), break')


class SignatureRule(Rule):
    name = 'signature'

    def matches(self, inp):
        return inp.library.lookup(inp.pattern) is not None

    def apply(self, inp):
        e = inp.library.lookup(inp.pattern)
        return Call(e.forecast, e.confidence, e.rationale)


class PatternMemoryRule(Rule):
    name = 'pattern-memory'

    @staticmethod
    def best(inp: RuleInput) -> tuple[str, PatternStat] | None:
        pattern = inp.pattern
        found = [(k, s) for k, s in inp.ctx.pattern_memory.items()
                 if pattern.endswith(k) and s.occurrences >= 3 and s.accuracy >= 0.6]
        if not found:
            return None
        return max(found, key=lambda kv: (len(kv[0]), kv[1].accuracy))

    def matches(self, inp):
        return self.best(inp) is not None

    def apply(self, inp):
        key, stat = self.best(inp)
        return Call(stat.most_recent_next, 90 + math.floor(stat.accuracy * 10),
                    f"learned pattern '{key}' accuracy {stat.accuracy:.2f}")


class ErrorMemoryRule(Rule):
    name = 'error-memory'

    def matches(self, inp):
        return len(inp.labels) >= ERROR_KEY_LEN and inp.ctx.error_memory.get(error_key(inp.labels), 0) >= 2

    def apply(self, inp):
        side = invert(inp.last)
        return Call(side, 89, f'pattern [{error_key(inp.labels)}] missed repeatedly, switch to {side}')


class MissStreakRule(Rule):
    name = 'miss-streak'

    def matches(self, inp):
        return inp.ctx.miss_streak >= 3

    def apply(self, inp):
        return Call(invert(inp.last), 88, f'{inp.ctx.miss_streak} misses in a row, switch side')


class StreakRule(Rule):
    """Cầu bệt. A Tài run watches die face 3, a Xỉu run watches face 5."""
    name = 'streak'
    WATCH = {TAI: 3, XIU: 5}

    def matches(self, inp):
        return current_streak(inp.labels).length >= 3

    def apply(self, inp):
        st = current_streak(inp.labels)
        side = st.side
        face = self.WATCH[side]
        flag = 'break_tried_high' if side == TAI else 'break_tried_low'
        seen = face in inp.dice
        if st.length >= 5 and not seen:
            if not getattr(inp.ctx, flag):
                setattr(inp.ctx, flag, True)
                log.debug('streak %s x%d: break attempt', side, st.length)
                return Call(invert(side), 80, f'streak {side} >= 5 without face {face}, try breaking')
            return Call(side, 90, f'ride streak {side}, waiting for face {face}')
        if seen:
            setattr(inp.ctx, flag, False)
            return Call(invert(side), 95, f'streak {side} + face {face}, break')
        return Call(side, 93, f'streak {side} ({st.length})')


class BridgeRule(Rule):
    name = 'bridge'

    def matches(self, inp):
        return bool(match_bridges(inp.pattern))

    def apply(self, inp):
        hit = match_bridges(inp.pattern)[0]
        # both motif classes forecast the inverse of the last outcome
        return Call(invert(inp.last), 92 if hit.is_break else 90, f'cầu {hit.name} detected')


class LearnedPatternRule(Rule):
    name = 'learned-pattern'

    def matches(self, inp):
        return inp.pattern in inp.ctx.learned

    def apply(self, inp):
        lp = inp.ctx.learned[inp.pattern]
        return Call(lp.forecast, lp.confidence, lp.rationale)


class FallbackRule(Rule):
    name = 'fallback'

    def matches(self, inp):
        return True

    def apply(self, inp):
        call = Call(label_of_total(inp.total), 72, f'fallback on total {inp.total}')
        inp.ctx.learned[inp.pattern] = LearnedPattern(call.label, call.confidence, call.reason)
        return call


DEFAULT_RULES: tuple[Rule, ...] = (
    RiggedFeedRule(),
    SignatureRule(),
    PatternMemoryRule(),
    ErrorMemoryRule(),
    MissStreakRule(),
    StreakRule(),
    BridgeRule(),
    LearnedPatternRule(),
    FallbackRule(),
)


class RuleEngine:
    def __init__(self, rules: Sequence[Rule] = DEFAULT_RULES):
        self.rules = tuple(rules)

    def evaluate(self, inp: RuleInput) -> RuleVerdict | None:
        if not inp.labels:
            return None
        for rule in self.rules:
            if rule.matches(inp):
                return RuleVerdict(rule.name, rule.apply(inp))
        return None
