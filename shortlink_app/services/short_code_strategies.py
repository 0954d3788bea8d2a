"""
Short code generation strategies.
Uses Strategy Pattern so the allocator does not care how candidates are made.
"""

import random
import re
import string
from abc import ABC, abstractmethod

MIN_SHORT_CODE_LENGTH = 4
SHORT_CODE_ALPHABET = string.ascii_letters + string.digits
SHORT_CODE_PATTERN = re.compile(r"^[a-zA-Z0-9]{%d,}$" % MIN_SHORT_CODE_LENGTH)


def is_valid_short_code(code: str) -> bool:
    """True when code could have been produced by a strategy"""
    return bool(SHORT_CODE_PATTERN.match(code or ""))


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""
    
    @abstractmethod
    def generate(self) -> str:
        """
        Produce one candidate short code.
        
        Candidates are not guaranteed unique; ShortCodeAllocator checks them.
        """
        pass


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Uniform random draw from [a-zA-Z0-9].
    
    Codes are identifiers, not secrets, so the non-cryptographic ``random``
    module is enough. With 6 characters there are 62^6 (~5.7e10) codes,
    far more than the expected number of rows.
    """
    
    def __init__(self, length: int = 6, rng: random.Random = None):
        if length < MIN_SHORT_CODE_LENGTH:
            raise ValueError(
                f"Short code length must be at least {MIN_SHORT_CODE_LENGTH}, got {length}"
            )
        self.length = length
        self.characters = SHORT_CODE_ALPHABET
        self._rng = rng or random.Random()
    
    def generate(self) -> str:
        return ''.join(self._rng.choices(self.characters, k=self.length))
