from __future__ import annotations

from common.config import StoreConfig
from common.logging_utils import get_logger
from counterstore.base import CounterStore, PrefixedStore


logger = get_logger(__name__)


def build_store(cfg: StoreConfig) -> CounterStore:
    """Construct the configured backend, wrapped with the deployment key prefix.

    Backend client libraries are imported lazily so a memory-only deployment
    does not need Redis or AWS credentials configured.
    """

    if cfg.backend == "redis":
        from counterstore.redis_store import RedisCounterStore

        inner: CounterStore = RedisCounterStore.from_url(cfg.redis_url, timeout_seconds=cfg.timeout_seconds)
    elif cfg.backend == "dynamodb":
        from counterstore.dynamodb_store import DynamoCounterStore

        inner = DynamoCounterStore.from_settings(
            table_name=cfg.dynamodb_table,
            region=cfg.region,
            profile=cfg.profile,
            timeout_seconds=cfg.timeout_seconds,
        )
    else:
        from counterstore.memory import InMemoryCounterStore

        inner = InMemoryCounterStore()

    logger.info("counter store backend=%s prefix=%s", cfg.backend, cfg.key_prefix or "-")
    if not cfg.key_prefix:
        return inner
    return PrefixedStore(inner, cfg.key_prefix)
