"""
Thread-safe rate-limited logging utilities.

Used for warnings that can repeat on every transaction (for example a node
that never returns the expected event) so they stay visible without
flooding the log.
"""
import logging
import threading
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60

# Keys expire after DEFAULT_INTERVAL seconds, after which the message is logged again
_log_cache: TTLCache = TTLCache(maxsize=256, ttl=DEFAULT_INTERVAL)
_log_cache_lock = threading.RLock()


def rate_limited_log(
    message: str,
    level: str = "warning",
    logger_instance: Optional[logging.Logger] = None,
) -> bool:
    """
    Log a message at most once per interval, in a thread-safe manner.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        logger_instance: Logger to use (defaults to module logger)

    Returns:
        True if the message was emitted, False if it was suppressed
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    key = f"{level}:{message}"

    with _log_cache_lock:
        if key in _log_cache:
            return False
        _log_cache[key] = True

    log_method(message)
    return True


def reset_rate_limited_log() -> None:
    """Forget all suppressed messages."""
    with _log_cache_lock:
        _log_cache.clear()
