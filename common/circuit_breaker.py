"""
Circuit breaker around blocking store calls
"""
import asyncio
import functools
import time
from enum import Enum
from typing import Callable, Any, Tuple, Type
from dataclasses import dataclass, field
import logging

from common.error_handling import CircuitOpen, StoreError

logger = logging.getLogger(__name__)

class CircuitState(Enum):
    CLOSED = "CLOSED"      # Normal operation
    OPEN = "OPEN"          # Failing fast
    HALF_OPEN = "HALF_OPEN"  # Trying to recover

@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker"""
    failure_threshold: int = 3   # Store failures before opening
    reset_timeout: float = 30.0  # Seconds to wait before trying half-open
    success_threshold: int = 2   # Successes needed to close from half-open
    # Only these count as failures; domain errors pass straight through
    failure_exceptions: Tuple[Type[BaseException], ...] = field(default=(StoreError,))

class CircuitBreaker:
    """Runs sync callables in the default executor, failing fast while the store is down.

    Calls are never abandoned on a wall clock: the worker thread would keep
    running and could commit after the caller was told it failed. Deadlines
    belong to the database driver, where hitting one rolls the transaction back.
    """

    def __init__(self, name: str, config: CircuitBreakerConfig):
        self.name = name
        self.config = config
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time = 0
        self.last_state_change = time.time()

    def _should_attempt_reset(self) -> bool:
        return (self.state == CircuitState.OPEN and
                time.time() - self.last_failure_time >= self.config.reset_timeout)

    def _record_success(self):
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.config.success_threshold:
                self.state = CircuitState.CLOSED
                self.failure_count = 0
                self.success_count = 0
                self.last_state_change = time.time()
                logger.info(f"Circuit breaker {self.name} closed after successful recovery")
        elif self.state == CircuitState.CLOSED:
            self.failure_count = 0

    def _record_failure(self):
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == CircuitState.CLOSED:
            if self.failure_count >= self.config.failure_threshold:
                self.state = CircuitState.OPEN
                self.last_state_change = time.time()
                logger.warning(f"Circuit breaker {self.name} opened after {self.failure_count} failures")
        elif self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            self.success_count = 0
            self.last_state_change = time.time()
            logger.warning(f"Circuit breaker {self.name} re-opened during half-open state")

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        """Execute func with circuit breaker protection"""
        if self._should_attempt_reset():
            self.state = CircuitState.HALF_OPEN
            self.success_count = 0
            self.last_state_change = time.time()
            logger.info(f"Circuit breaker {self.name} entering half-open state")

        if self.state == CircuitState.OPEN:
            raise CircuitOpen(f"Circuit breaker {self.name} is open")

        try:
            if asyncio.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
        except self.config.failure_exceptions:
            self._record_failure()
            raise
        except Exception:
            # the store answered; the caller's request was just wrong
            self._record_success()
            raise

        self._record_success()
        return result

    def get_state(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "last_failure_time": self.last_failure_time,
            "last_state_change": self.last_state_change,
        }
