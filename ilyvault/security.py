"""Master-password hashing, the password policy and verification codes."""

from __future__ import annotations

import hmac
import secrets
import unicodedata

from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

ARGON2_ITERATIONS = 3
ARGON2_MEMORY_KIB = 64 * 1024
ARGON2_LANES = 4
HASH_LENGTH = 32
SALT_LENGTH = 16

MIN_PASSWORD_BYTES = 24
ALLOWED_SPECIALS = "=~`$%^!_-()[]&#@*?%+*-/:\"'.,\\/"

CODE_LENGTH = 6
CODE_DIGITS = "0123456789"


class PasswordPolicyError(ValueError):
    """Raised when a master password does not satisfy the policy."""


def hash_password(password: str, salt: bytes) -> str:
    """Return the hex-encoded Argon2id hash of ``password`` with ``salt``."""
    kdf = Argon2id(
        salt=salt,
        length=HASH_LENGTH,
        iterations=ARGON2_ITERATIONS,
        lanes=ARGON2_LANES,
        memory_cost=ARGON2_MEMORY_KIB,
    )
    return kdf.derive(password.encode("utf-8")).hex()


def generate_password_hash(password: str) -> tuple[str, str]:
    """Hash ``password`` with a fresh random salt; return ``(hash_hex, salt_hex)``."""
    salt = secrets.token_bytes(SALT_LENGTH)
    return hash_password(password, salt), salt.hex()


def verify_password(password: str, stored_hash: str, salt_hex: str) -> bool:
    """Check ``password`` against a stored hex hash and hex salt."""
    try:
        salt = bytes.fromhex(salt_hex)
    except ValueError as exc:
        raise ValueError(f"ошибка декодирования соли: {exc}") from exc
    computed = hash_password(password, salt)
    return hmac.compare_digest(
        computed.encode("utf-8"), stored_hash.encode("utf-8")
    )


def validate_password(password: str) -> None:
    """Raise :class:`PasswordPolicyError` unless ``password`` meets the policy.

    The length limit counts UTF-8 bytes, not characters.
    """
    if len(password.encode("utf-8")) < MIN_PASSWORD_BYTES:
        raise PasswordPolicyError("пароль должен быть не короче 24 символов")

    has_upper = has_lower = has_digit = has_special = False
    for char in password:
        category = unicodedata.category(char)
        if category == "Lu":
            has_upper = True
        elif category == "Ll":
            has_lower = True
        elif category == "Nd":
            has_digit = True
        elif char in ALLOWED_SPECIALS:
            has_special = True
        else:
            raise PasswordPolicyError(f"недопустимый символ: {char}")

    missing = []
    if not has_upper:
        missing.append("минимум 1 заглавная буква")
    if not has_lower:
        missing.append("минимум 1 строчная буква")
    if not has_digit:
        missing.append("минимум 1 цифра")
    if not has_special:
        missing.append(f"минимум 1 спецсимвол ({ALLOWED_SPECIALS})")

    if missing:
        raise PasswordPolicyError("требуется: " + ", ".join(missing))


def generate_verification_code() -> str:
    """Return a random six-digit verification code."""
    return "".join(secrets.choice(CODE_DIGITS) for _ in range(CODE_LENGTH))