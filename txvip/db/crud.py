from typing import Optional

from sqlmodel import Session, select

from txvip.db.models import EngineState, Prediction, Round, utcnow


def insert_round(session: Session, r: Round) -> Round:
    session.add(r)
    session.commit()
    session.refresh(r)
    return r


def latest_rounds(session: Session, limit: int = 500) -> list[Round]:
    """Most recent rounds, oldest first."""
    rows = session.exec(select(Round).order_by(Round.round_id.desc()).limit(limit)).all()
    return list(reversed(rows))


def last_round(session: Session) -> Round | None:
    return session.exec(select(Round).order_by(Round.round_id.desc()).limit(1)).first()


def prune_rounds(session: Session, keep: int) -> int:
    """FIFO retention by round order; returns how many rows were dropped."""
    stale = session.exec(select(Round).order_by(Round.round_id.desc()).offset(keep)).all()
    for r in stale:
        session.delete(r)
    if stale:
        session.commit()
    return len(stale)


# Prediction helpers


def create_prediction(session: Session, target_round: int | None, label_pred: str,
                      confidence: float, p_tai: float) -> Prediction:
    pred = Prediction(target_round=target_round, label_pred=label_pred,
                      confidence=confidence, p_tai=p_tai)
    session.add(pred)
    session.commit()
    session.refresh(pred)
    return pred


def latest_unresolved_prediction(session: Session, target_round: int) -> Optional[Prediction]:
    return session.exec(
        select(Prediction)
        .where(Prediction.target_round == target_round)
        .where(Prediction.correct.is_(None))
        .order_by(Prediction.ts.desc())
        .limit(1)
    ).first()


def resolve_prediction(session: Session, pred: Prediction, round_obj: Round) -> Prediction:
    pred.actual_label = round_obj.label
    pred.correct = (pred.label_pred == round_obj.label)
    pred.resolved_ts = utcnow()
    session.add(pred)
    session.commit()
    session.refresh(pred)
    return pred


def history(session: Session, limit: int = 50) -> list[Prediction]:
    return session.exec(select(Prediction).order_by(Prediction.ts.desc()).limit(limit)).all()


# Engine state


def load_state(session: Session) -> dict:
    row = session.get(EngineState, 1)
    return dict(row.payload or {}) if row else {}


def save_state(session: Session, payload: dict) -> None:
    row = session.get(EngineState, 1)
    if row is None:
        row = EngineState(id=1, payload=payload)
    else:
        row.payload = payload
        row.updated_ts = utcnow()
    session.add(row)
    session.commit()
