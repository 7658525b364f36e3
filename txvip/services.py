import logging
import random
import threading
from typing import Callable

import requests
from pydantic import ValidationError
from sqlmodel import Session

from txvip.analytics.combiner import Weights
from txvip.analytics.ensemble import ForecastEngine, capital_advice, kelly_fraction
from txvip.analytics.markov import MarkovEngine
from txvip.analytics.patterns import runs
from txvip.analytics.rules import RuleContext
from txvip.config import settings
from txvip.core.features import md5_randomness
from txvip.core.types import EngineNotReady, Snapshot, current_streak, to_code, to_name
from txvip.db.crud import (create_prediction, history, insert_round, last_round,
                           latest_rounds, latest_unresolved_prediction, load_state,
                           prune_rounds, resolve_prediction, save_state)
from txvip.db.models import Round
from txvip.feed import FeedRound, fetch_latest

log = logging.getLogger(__name__)

# single writer: ingestion and forecasting never interleave
_lock = threading.RLock()
_mkv = MarkovEngine()
_cached_built = False
_engine: ForecastEngine | None = None
_rng = random.Random()


def get_engine() -> ForecastEngine:
    global _engine
    if _engine is None:
        _engine = ForecastEngine(
            markov=_mkv,
            weights=Weights.from_settings(settings),
            conf_min=settings.conf_min,
            conf_max=settings.conf_max,
            mc_sims=settings.mc_sims,
        )
    return _engine


def reset_state(engine: ForecastEngine | None = None):
    """Drop in-memory caches; the Markov table is rebuilt on next use."""
    global _engine, _cached_built
    with _lock:
        _mkv.reset()
        _cached_built = False
        _engine = engine
        if engine is not None:
            engine.markov = _mkv


def _ensure_markov(session: Session):
    global _cached_built
    if not _cached_built:
        rows = latest_rounds(session, limit=settings.history_limit)
        _mkv.rebuild([to_code(r.label) for r in rows])
        _cached_built = True


def _snapshot(session: Session) -> Snapshot:
    return Snapshot.from_rounds(latest_rounds(session, limit=settings.history_limit))


def ingest_round(session: Session, feed: FeedRound, source: str = "feed") -> dict:
    with _lock:
        _ensure_markov(session)
        prev = last_round(session)
        if prev is not None and feed.round_id <= prev.round_id:
            return {'ok': True, 'new': False, 'round_id': feed.round_id}

        prior = [to_code(r.label) for r in latest_rounds(session, limit=settings.history_limit)]
        md5_check = md5_randomness(feed.md5)
        r = Round(round_id=feed.round_id, d1=feed.d1, d2=feed.d2, d3=feed.d3,
                  md5=feed.md5, md5_random=md5_check['is_random'], source=source)
        r.compute()
        # the feed's own result wins over the derived one
        r.total = feed.total
        r.label = to_name(feed.label)
        out = insert_round(session, r)
        dropped = prune_rounds(session, settings.history_limit)

        labels = (prior + [to_code(out.label)])[-settings.history_limit:]
        _mkv.update_incremental(labels)

        ctx = RuleContext.from_dict(load_state(session))
        resolved = None
        pred = latest_unresolved_prediction(session, out.round_id)
        if pred:
            resolved = resolve_prediction(session, pred, out)
            ctx.record_result(prior, to_code(pred.label_pred), to_code(out.label))
        ctx.remember_transition(labels)
        ctx.learn_pattern(labels, out.total, _rng)
        save_state(session, ctx.to_dict())

        log.info('round %s stored: %s %s (total %s)%s', out.round_id, out.dice, out.label,
                 out.total, f', {dropped} evicted' if dropped else '')
        return {
            'ok': True,
            'new': True,
            'round_id': out.round_id,
            'label': out.label,
            'total': out.total,
            'md5_check': md5_check,
            'resolved': {'id': resolved.id, 'correct': resolved.correct} if resolved else None,
        }


def poll_once(session: Session, fetch: Callable[[], FeedRound] = fetch_latest) -> dict:
    try:
        feed = fetch()
    except (requests.RequestException, ValidationError, ValueError) as e:
        log.warning('feed unavailable: %s', e)
        return {'ok': False, 'reason': str(e)}
    return ingest_round(session, feed)


def forecast(session: Session, record: bool = True) -> dict:
    """Raises EngineNotReady when no round is stored yet."""
    with _lock:
        _ensure_markov(session)
        snap = _snapshot(session)
        if not snap.labels:
            raise EngineNotReady('no data available yet, waiting for poll')
        ctx = RuleContext.from_dict(load_state(session))
        fc = get_engine().forecast(snap, ctx)
        save_state(session, ctx.to_dict())
        next_round = snap.current_round_id + 1 if snap.current_round_id is not None else None
        pred = None
        if record:
            pred = create_prediction(session, next_round, to_name(fc.label), fc.confidence, fc.probability)
        return {
            'prediction_id': pred.id if pred else None,
            'session': snap.current_round_id,
            'dice': '-'.join(map(str, snap.current_dice)),
            'total': snap.current_total,
            'result': to_name(snap.labels[-1]),
            'next_session': next_round,
            'predict': to_name(fc.label),
            'confidence': fc.confidence_text,
            'probability': fc.probability,
            'rationale': fc.rationale,
            'pattern': snap.pattern[-20:],
            'diagnostics': fc.diagnostics,
        }


def get_capital_advice(session: Session) -> dict:
    with _lock:
        _ensure_markov(session)
        snap = _snapshot(session)
        if not snap.labels:
            raise EngineNotReady('no data available yet')
        # a throwaway context: advice must not move the persisted rule state
        ctx = RuleContext.from_dict(load_state(session))
        fc = get_engine().forecast(snap, ctx)
        return {
            'predict': to_name(fc.label),
            'probability': fc.probability,
            'kelly_fraction': kelly_fraction(fc.probability),
            'advice': capital_advice(fc.probability),
        }


def get_stats(session: Session) -> dict:
    with _lock:
        _ensure_markov(session)
        labels = [to_code(r.label) for r in latest_rounds(session, limit=settings.history_limit)]
        st = current_streak(labels)
        recent = labels[-20:]
        m = _mkv.stats(labels)
        return {
            'total_samples': len(labels),
            'tai_count': labels.count('T'),
            'xiu_count': labels.count('X'),
            'current_streak': st.length,
            'streak_side': to_name(st.side) if st.side else None,
            'recent20_tai': recent.count('T'),
            'recent20_xiu': recent.count('X'),
            'recent_runs': [{'side': to_name(side), 'length': n} for _, _, side, n in runs(labels, k=1)[-5:]],
            'transition': m.transition,
            'counts': m.counts,
            'p_value_row': m.p_value_row,
            'entropy': m.entropy,
        }


def get_history(session: Session, limit: int = 100) -> dict:
    limit = max(1, min(settings.history_limit, limit))
    rows = latest_rounds(session, limit=limit)
    items = [{
        'round_id': r.round_id,
        'ts': r.ts.isoformat(),
        'dice': r.dice,
        'total': r.total,
        'label': r.label,
        'md5': r.md5,
        'md5_random': r.md5_random,
    } for r in rows]
    return {'count': len(items), 'history': items}


def get_predictions(session: Session, limit: int = 50) -> list[dict]:
    rows = history(session, limit=limit)

    def to_dict(p):
        return {
            'id': p.id,
            'target_round': p.target_round,
            'label_pred': p.label_pred,
            'confidence': p.confidence,
            'p_tai': p.p_tai,
            'actual_label': p.actual_label,
            'correct': p.correct,
            'ts': p.ts.isoformat(),
            'resolved_ts': p.resolved_ts.isoformat() if p.resolved_ts else None,
        }
    return [to_dict(x) for x in rows]


def get_summary(session: Session) -> dict:
    rows = history(session, limit=100000)
    wins = sum(1 for r in rows if r.correct is True)
    losses = sum(1 for r in rows if r.correct is False)
    total = wins + losses
    winrate = (wins / total) if total else 0.0
    return {'wins': wins, 'losses': losses, 'total': total, 'winrate': winrate}
