"""Remote feed client: fetch the latest round and normalize its schema."""
import logging
import threading

import requests
from pydantic import BaseModel, ValidationError, model_validator

from txvip.config import settings
from txvip.core.types import TAI, XIU, label_of_total
from txvip.core.validation import sanitize_die

log = logging.getLogger(__name__)


def _first(data: dict, *keys):
    for k in keys:
        v = data.get(k)
        if v not in (None, ''):
            return v
    return None


class FeedRound(BaseModel):
    round_id: int
    d1: int
    d2: int
    d3: int
    total: int
    label: str  # 'T' | 'X'
    md5: str | None = None

    @model_validator(mode='before')
    @classmethod
    def normalize(cls, data):
        if not isinstance(data, dict) or 'round_id' in data:
            return data
        dice = data.get('dice') if isinstance(data.get('dice'), list) else []
        faces = [
            _first(data, 'Xuc_xac_1', 'xuc_xac_1', 'x1') or (dice[0] if len(dice) > 0 else None),
            _first(data, 'Xuc_xac_2', 'xuc_xac_2', 'x2') or (dice[1] if len(dice) > 1 else None),
            _first(data, 'Xuc_xac_3', 'xuc_xac_3', 'x3') or (dice[2] if len(dice) > 2 else None),
        ]
        d1, d2, d3 = (sanitize_die(f) for f in faces)
        total = _first(data, 'Tong', 'tong', 'total')
        total = int(total) if total is not None else d1 + d2 + d3
        result = _first(data, 'Ket_qua', 'ket_qua', 'result')
        if result is not None:
            label = TAI if 't' in str(result).lower() else XIU
        else:
            label = label_of_total(total)
        return {
            'round_id': _first(data, 'Phien', 'phien', 'session', 'id'),
            'd1': d1, 'd2': d2, 'd3': d3,
            'total': total,
            'label': label,
            'md5': data.get('md5'),
        }


def fetch_latest(url: str | None = None, timeout: float | None = None) -> FeedRound:
    """Raises requests.RequestException or pydantic.ValidationError."""
    r = requests.get(url or settings.poll_url, timeout=timeout or settings.poll_timeout)
    r.raise_for_status()
    return FeedRound.model_validate(r.json())


class Poller:
    """Background loop calling `poll` every `interval` seconds until stopped."""

    def __init__(self, poll, interval: float):
        self.poll = poll
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def _run(self):
        while not self._stop.is_set():
            try:
                out = self.poll()
                log.debug('poll: %s', out)
            except (requests.RequestException, ValidationError, ValueError) as e:
                log.warning('poll failed: %s', e)
            except Exception:
                # store errors must not stop the loop
                log.exception('poll crashed')
            self._stop.wait(self.interval)

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='txvip-poller', daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
