import logging
import secrets
import hashlib
from typing import Optional

from itsdangerous import URLSafeTimedSerializer, BadData, SignatureExpired

from config import TOKEN_MAX_AGE, get_secret_key
from database import create_document, find_document
from errors import AuthError, DuplicateRecordError, ValidationError
from schemas import User

logger = logging.getLogger(__name__)

TOKEN_SALT = "auth-token"
INVALID_CREDENTIALS = "Invalid credentials"


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    pw_hash = hashlib.sha256((salt + password).encode()).hexdigest()
    return f"{salt}${pw_hash}"


def verify_password(password: str, stored: str) -> bool:
    try:
        salt, pw_hash = stored.split("$")
    except ValueError:
        return False
    test = hashlib.sha256((salt + password).encode()).hexdigest()
    return secrets.compare_digest(test, pw_hash)


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_secret_key(), salt=TOKEN_SALT)


def get_user_by_email(email: str) -> Optional[dict]:
    return find_document("user", {"email": email.lower()})


def register(name: str, email: str, password: str) -> dict:
    if not (name or "").strip() or not (email or "").strip() or not password:
        raise ValidationError("Name, email and password are required")
    if get_user_by_email(email):
        raise ValidationError("Email already registered")
    user = User(name=name, email=email.lower(), password_hash=hash_password(password))
    try:
        create_document("user", user)
    except DuplicateRecordError:
        # a concurrent registration won the unique email index
        raise ValidationError("Email already registered")
    logger.info("Registered staff user")
    return {"success": True}


def issue_token(user: dict) -> str:
    return _serializer().dumps({"id": str(user.get("_id")), "email": user.get("email")})


def login(email: str, password: str) -> str:
    # Unknown email and wrong password answer identically
    user = get_user_by_email(email or "")
    if not user or not verify_password(password or "", user.get("passwordHash", "")):
        logger.warning("Failed login attempt")
        raise AuthError(INVALID_CREDENTIALS)
    return issue_token(user)


def verify_token(token: Optional[str]) -> dict:
    if not token:
        raise AuthError("Authorization token missing")
    try:
        identity = _serializer().loads(token, max_age=TOKEN_MAX_AGE)
    except SignatureExpired:
        raise AuthError("Token expired")
    except BadData:
        raise AuthError("Invalid token")
    if not isinstance(identity, dict) or not identity.get("id"):
        raise AuthError("Invalid token")
    return identity


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None
