import os

# keep the module-level engine off the real data file
os.environ.setdefault("DB_DSN", "sqlite://")
