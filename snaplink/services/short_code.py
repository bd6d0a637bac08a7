"""
Short code generation.

A code is the salted Base62 encoding of the next value of a durable counter.
The encoding is a bijection, so distinct counter values can never collide,
and the salt makes consecutive values look unrelated to outside observers.
"""

import hashlib
import logging
from math import gcd

from snaplink.counter.strategies import CounterStrategy

logger = logging.getLogger(__name__)


class SaltedBase62Encoder:
    """
    Keyed, reversible Base62 encoding with a minimum length.

    Process:
    1. Shuffle the alphabet with the salt
    2. Values that fit in min_length digits go through a salted affine
       permutation of that space (x -> a*x + b mod 62^min_length) and are
       left-padded to exactly min_length characters
    3. Larger values are encoded directly and are always longer than
       min_length, so they cannot collide with the permuted range

    The salt must stay fixed for the lifetime of a deployment: changing it
    does not break existing links but makes new codes for old counter values.
    """

    ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

    def __init__(self, salt: str = "", min_length: int = 7):
        if min_length < 1:
            raise ValueError("min_length must be at least 1")
        self.salt = salt
        self.min_length = min_length
        self.alphabet = self._shuffle(self.ALPHABET, salt)
        self.base = len(self.alphabet)
        self.space = self.base ** min_length

        digest = hashlib.sha256(salt.encode("utf-8")).digest()
        multiplier = int.from_bytes(digest[:8], "big") % self.space | 1
        while gcd(multiplier, self.space) != 1:
            multiplier += 2
        self.multiplier = multiplier
        self.offset = int.from_bytes(digest[8:16], "big") % self.space
        self._inverse = pow(self.multiplier, -1, self.space)

    @staticmethod
    def _shuffle(alphabet: str, salt: str) -> str:
        """Deterministic salt-driven permutation of the alphabet"""
        if not salt:
            return alphabet
        chars = list(alphabet)
        p = 0
        v = 0
        for i in range(len(chars) - 1, 0, -1):
            v %= len(salt)
            integer = ord(salt[v])
            p += integer
            j = (integer + v + p) % i
            chars[i], chars[j] = chars[j], chars[i]
            v += 1
        return "".join(chars)

    def _to_digits(self, number: int) -> str:
        if number == 0:
            return self.alphabet[0]
        result = []
        while number > 0:
            number, remainder = divmod(number, self.base)
            result.append(self.alphabet[remainder])
        return "".join(reversed(result))

    def _from_digits(self, code: str) -> int:
        number = 0
        for char in code:
            index = self.alphabet.find(char)
            if index < 0:
                raise ValueError(f"Invalid character {char!r} in code {code!r}")
            number = number * self.base + index
        return number

    def encode(self, value: int) -> str:
        if value < 0:
            raise ValueError("Cannot encode a negative value")
        if value < self.space:
            permuted = (self.multiplier * value + self.offset) % self.space
            return self._to_digits(permuted).rjust(self.min_length, self.alphabet[0])
        return self._to_digits(value)

    def decode(self, code: str) -> int:
        """Inverse of encode. Used for diagnostics; the redirect path never decodes."""
        if len(code) < self.min_length:
            raise ValueError(f"Code {code!r} is shorter than {self.min_length}")
        number = self._from_digits(code)
        if len(code) == self.min_length:
            return ((number - self.offset) * self._inverse) % self.space
        return number


class CodeGenerator:
    """Turns the next counter value into a short code"""

    def __init__(self, counter: CounterStrategy, encoder: SaltedBase62Encoder):
        self.counter = counter
        self.encoder = encoder

    def next(self) -> str:
        """
        Generate the next short code.

        Raises:
            BackingStoreUnavailable: the counter could not be incremented.
                No code is fabricated in that case.
        """
        value = self.counter.increment()
        code = self.encoder.encode(value)
        logger.debug("Generated short code %s", code)
        return code
