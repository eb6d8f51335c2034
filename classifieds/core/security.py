import base64
import hashlib
import secrets
from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from classifieds.core.config import settings


@dataclass(frozen=True)
class AccessTokenParts:
    prefix: str
    plain: str
    hashed: str


def generate_access_token(prefix_len: int = 8, pepper: str | None = None) -> AccessTokenParts:
    # Example: ct_<prefix>_<random>
    raw = secrets.token_urlsafe(32)
    prefix = raw[:prefix_len]
    plain = f"ct_{prefix}_{raw}"
    hashed = hash_access_token(plain, pepper=pepper)
    return AccessTokenParts(prefix=prefix, plain=plain, hashed=hashed)


def hash_access_token(plain: str, pepper: str | None = None) -> str:
    # Pepper protects against rainbow tables if DB leaks.
    if pepper is None:
        pepper = settings.token_pepper.get_secret_value()
    salted = (plain + pepper).encode("utf-8")
    digest = hashlib.sha256(salted).digest()
    return base64.b64encode(digest).decode("utf-8")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, encoded: str) -> bool:
    return check_password_hash(encoded, password)
