# ============================================================
# 📦 src/sales_potential/infrastructure/queue_factory.py
# ============================================================

import os

from redis import Redis
from rq import Queue

REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
QUEUE_NAME = "potential_reports"


def get_redis_conn() -> Redis:
    return Redis.from_url(os.getenv("REDIS_URL", REDIS_URL))


def fila_potencial(conn: Redis = None) -> Queue:
    return Queue(
        QUEUE_NAME,
        connection=conn or get_redis_conn(),
        default_timeout=int(os.getenv("POTENTIAL_JOB_TIMEOUT", 3600)),
    )
