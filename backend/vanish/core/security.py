from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

# Room PINs are short and checked on every join; lighter parameters than
# account passwords would get.
_ph = PasswordHasher(
    time_cost=2,
    memory_cost=19456,  # ~19 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
)


def hash_pin(pin: str) -> str:
    return _ph.hash(str(pin))


def verify_pin(pin: str | None, pin_hash: str) -> bool:
    try:
        return _ph.verify(pin_hash, str(pin or ""))
    except (VerificationError, InvalidHashError):
        return False
