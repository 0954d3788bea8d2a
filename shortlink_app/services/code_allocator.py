"""
Bounded allocation of unique short codes.

The existence check below is only a fast path. Between the check and the
INSERT another request may take the same code, so URLService treats a unique
constraint violation on insert as one more collision and resumes allocation
from the next attempt number.
"""

from dataclasses import dataclass
from typing import Callable, Union

from shortlink_app.logging_config import get_logger
from shortlink_app.services.short_code_strategies import ShortCodeStrategy

logger = get_logger(__name__)


@dataclass(frozen=True)
class CodeAllocated:
    """A candidate nobody holds at check time; attempt is 1-based"""
    code: str
    attempt: int


@dataclass(frozen=True)
class ExhaustedRetries:
    """Every attempt in the budget collided"""
    attempts: int


AllocationResult = Union[CodeAllocated, ExhaustedRetries]


class ShortCodeAllocator:
    """Generate candidates until one is free or the budget runs out"""

    def __init__(self, strategy: ShortCodeStrategy, max_attempts: int = 5):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.strategy = strategy
        self.max_attempts = max_attempts

    def allocate(self, is_taken: Callable[[str], bool], start_attempt: int = 0) -> AllocationResult:
        """
        Args:
            is_taken: storage lookup, True when a record already uses the code
            start_attempt: attempts already spent (e.g. on an insert collision)

        Returns:
            CodeAllocated on success, ExhaustedRetries when the budget is spent
        """
        for attempt in range(start_attempt + 1, self.max_attempts + 1):
            candidate = self.strategy.generate()
            if not is_taken(candidate):
                return CodeAllocated(code=candidate, attempt=attempt)
            logger.debug("Short code collision on attempt %d: %s", attempt, candidate)

        logger.warning("Short code allocation exhausted after %d attempts", self.max_attempts)
        return ExhaustedRetries(attempts=self.max_attempts)
