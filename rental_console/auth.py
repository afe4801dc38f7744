import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from . import config

logger = logging.getLogger(__name__)

# Console sections each role may open
ROLE_SECTIONS = {
    "dashboard": {"manager", "agent", "technician", "accountant"},
    "customers": {"manager", "agent"},
    "reservations": {"manager", "agent"},
    "rentals": {"manager", "agent"},
    "vehicles": {"manager", "agent", "technician"},
    "maintenance": {"manager", "technician"},
    "invoices": {"manager", "accountant"},
    "payments": {"manager", "accountant"},
}


def can_access(role: str, section: str) -> bool:
    return role in ROLE_SECTIONS.get(section, set())


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        # malformed stored hash
        return False


def get_password_hash(password: str) -> str:
    hashed_bytes = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
    return hashed_bytes.decode('utf-8')


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT Error: {e}")
        return None
    if not payload.get("sub") or not payload.get("role"):
        logger.warning("Token is missing subject or role")
        return None
    return payload
