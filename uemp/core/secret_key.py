"""Secret Key Generation — shared secrets printed alongside each product instance.

Invariants:
    - Exactly SECRET_KEY_LENGTH characters drawn uniformly from SECRET_KEY_ALPHABET
    - Source is the `secrets` CSPRNG, never `random`
    - A shared secret only: no expiry, no signature, no access-control semantics
"""

import hmac
import secrets
import string

SECRET_KEY_LENGTH: int = 10
SECRET_KEY_ALPHABET: str = string.ascii_letters + string.digits  # 62 characters


def generate_secret_key(length: int = SECRET_KEY_LENGTH) -> str:
    return "".join(secrets.choice(SECRET_KEY_ALPHABET) for _ in range(length))


def secret_keys_match(supplied: str, stored: str) -> bool:
    """Exact match, compared in constant time."""
    return hmac.compare_digest(supplied.encode("utf-8"), stored.encode("utf-8"))
