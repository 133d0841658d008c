"""
Bounded retry for operations that can be safely re-attempted
"""
from typing import Callable, Any, Optional, List
import logging

logger = logging.getLogger(__name__)

class RetryConfig:
    """Configuration for retry behavior"""
    def __init__(self, max_attempts: int = 3, retryable_exceptions: Optional[List[type]] = None):
        self.max_attempts = max_attempts
        self.retryable_exceptions = tuple(retryable_exceptions or [])

def retry_call(func: Callable, config: RetryConfig, *args, **kwargs) -> Any:
    """Call func, re-attempting immediately on retryable exceptions up to config.max_attempts times"""
    name = getattr(func, "__name__", repr(func))
    for attempt in range(1, config.max_attempts + 1):
        try:
            return func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt == config.max_attempts:
                logger.error(f"Max retry attempts ({config.max_attempts}) reached for {name}")
                raise
            logger.warning(f"Attempt {attempt}/{config.max_attempts} failed for {name}: {e}. Retrying")
