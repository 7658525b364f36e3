import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlmodel import Session

from txvip.api.routes import router
from txvip.config import settings
from txvip.db.base import engine, init_db
from txvip.feed import Poller
from txvip.services import poll_once

log = logging.getLogger(__name__)


def _poll():
    with Session(engine) as session:
        return poll_once(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    poller = None
    if settings.poll_enabled:
        poller = Poller(_poll, settings.poll_interval)
        poller.start()
        log.info("polling %s every %ss", settings.poll_url, settings.poll_interval)
    yield
    if poller:
        poller.stop()

app = FastAPI(title="TaiXiu VIP Forecaster", lifespan=lifespan)
app.include_router(router)

@app.get("/")
def home():
    return {"ok": True, "app": "TaiXiu VIP Forecaster"}
