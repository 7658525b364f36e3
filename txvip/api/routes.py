from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from txvip.api.schemas import (AdviceOut, HistoryOut, IngestIn, PredictionItem, PredictOut,
                               StatsOut, SummaryOut)
from txvip.core.types import EngineNotReady, label_of_total
from txvip.core.validation import is_valid_md5
from txvip.db.base import get_session
from txvip.feed import FeedRound
from txvip.services import (forecast, get_capital_advice, get_history, get_predictions,
                            get_stats, get_summary, ingest_round, poll_once)

router = APIRouter()


@router.get('/predict', response_model=PredictOut)
def predict(session: Session = Depends(get_session)):
    try:
        return forecast(session)
    except EngineNotReady as e:
        raise HTTPException(503, detail=str(e))


@router.get('/stats', response_model=StatsOut)
def stats(session: Session = Depends(get_session)):
    return get_stats(session)


@router.get('/history', response_model=HistoryOut)
def round_history(limit: int = Query(100, ge=1), session: Session = Depends(get_session)):
    return get_history(session, limit=limit)


@router.post('/ingest')
def ingest(data: IngestIn, session: Session = Depends(get_session)):
    if data.md5 and not is_valid_md5(data.md5):
        raise HTTPException(400, detail="md5 must be 32 hex")
    total = data.d1 + data.d2 + data.d3
    feed = FeedRound(round_id=data.round_id, d1=data.d1, d2=data.d2, d3=data.d3,
                     total=total, label=label_of_total(total), md5=data.md5)
    return ingest_round(session, feed, source="manual")


@router.post('/poll')
def poll(session: Session = Depends(get_session)):
    return poll_once(session)


@router.get('/capital-advice', response_model=AdviceOut)
def advice(session: Session = Depends(get_session)):
    try:
        return get_capital_advice(session)
    except EngineNotReady as e:
        raise HTTPException(503, detail=str(e))


@router.get('/predictions', response_model=list[PredictionItem])
def predictions(limit: int = Query(50, ge=1, le=1000), session: Session = Depends(get_session)):
    return get_predictions(session, limit=limit)


@router.get('/summary', response_model=SummaryOut)
def summary(session: Session = Depends(get_session)):
    return get_summary(session)
