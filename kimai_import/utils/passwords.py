import secrets

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def unusable_password_hash() -> str:
    """Hash of a random secret nobody knows, for users created by an import."""
    return get_password_hash(secrets.token_urlsafe(32))
