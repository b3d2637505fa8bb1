# family_portal/core/security.py
"""
Security module for authentication primitives.
Handles password hashing and signed session token creation/validation.
"""
import datetime as dt
import jwt  # PyJWT
from passlib.context import CryptContext

from family_portal.config import settings

# Password hashing context
# Argon2 is a modern, salted, deliberately slow password hashing algorithm
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

# JWT configuration
JWT_SECRET = settings.jwt_secret  # Secret key for JWT signing (use strong secret in production)
SESSION_TTL_DAYS = settings.session_ttl_days  # Session lifetime, 14 days by default
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)

def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Args:
        plain: Plain text password to verify
        hashed: Hashed password from database

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain, hashed)

def create_access_token(
    user_id: str,
    role: str,
    secret: str = JWT_SECRET,
    ttl_days: int = SESSION_TTL_DAYS,
) -> str:
    """
    Create a signed session token binding a user id and role.

    The role claim is only a routing hint: every authenticated request still
    reloads the live user row before trusting it.

    Args:
        user_id: Unique user identifier (UUID string)
        role: User role ("member" or "admin")
        secret: Signing secret
        ttl_days: Token lifetime in days

    Returns:
        Encoded JWT token string

    Token payload includes:
        - sub: Subject (user ID)
        - role: User role
        - iat: Issued at timestamp
        - exp: Expiration timestamp
    """
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": user_id,  # Subject (user ID)
        "role": role,    # User role
        "iat": now,      # Issued at timestamp
        "exp": now + dt.timedelta(days=ttl_days),  # Expiration timestamp
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALG)

def decode_access_token(token: str, secret: str = JWT_SECRET) -> dict:
    """
    Decode and validate a session token.

    Args:
        token: JWT token string to decode
        secret: Signing secret

    Returns:
        Decoded token payload dictionary containing sub, role, iat, exp

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, secret, algorithms=[JWT_ALG])
