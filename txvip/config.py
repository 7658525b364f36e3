from pydantic_settings import BaseSettings
import os

class Settings(BaseSettings):
    db_dsn: str = os.getenv("DB_DSN", "sqlite:///./data/txvip.db")
    history_limit: int = int(os.getenv("HISTORY_LIMIT", 500))
    poll_url: str = os.getenv("POLL_URL", "https://toilavinhmaycays23.onrender.com/vinhmaycay")
    poll_interval: float = float(os.getenv("POLL_INTERVAL", 30))
    poll_timeout: float = float(os.getenv("POLL_TIMEOUT", 9))
    poll_enabled: bool = os.getenv("POLL_ENABLED", "0") in ("1", "true", "True")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # combiner base weights
    w_markov: float = float(os.getenv("W_MARKOV", 0.20))
    w_pattern: float = float(os.getenv("W_PATTERN", 0.20))
    w_local_trend: float = float(os.getenv("W_LOCAL_TREND", 0.15))
    w_global_freq: float = float(os.getenv("W_GLOBAL_FREQ", 0.10))
    w_ai_self_learn: float = float(os.getenv("W_AI_SELF_LEARN", 0.10))
    w_signature: float = float(os.getenv("W_SIGNATURE", 0.15))
    w_bayes: float = float(os.getenv("W_BAYES", 0.10))
    w_montecarlo: float = float(os.getenv("W_MONTECARLO", 0.05))
    w_ngram: float = float(os.getenv("W_NGRAM", 0.10))

    conf_min: float = float(os.getenv("CONF_MIN", 55.0))
    conf_max: float = float(os.getenv("CONF_MAX", 99.0))
    mc_sims: int = int(os.getenv("MC_SIMS", 5000))

settings = Settings()
