# =======================================================================================
# village_gate/services/auth_service.py - Authentication and caller resolution
# =======================================================================================
import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Tuple

from passlib.context import CryptContext
from sqlalchemy import select

from ..config import config
from ..database import DatabaseManager
from ..models.tables import auth_tokens, user_profiles
from ..utils.exceptions import AuthenticationRequired
from ..utils.validators import require_role, utcnow

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class CallerContext:
    """Authenticated caller as resolved server-side from its profile."""
    user_id: str
    tenant_id: str
    role: str

    def require_role(self, allowed: Iterable[str], action: str,
                     who: str = "security officers") -> None:
        require_role(self.role, allowed, action, who)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthService:
    """Handles guard/admin login and maps bearer tokens to a CallerContext."""

    def __init__(self, db: DatabaseManager, token_ttl_minutes: Optional[int] = None):
        self.db = db
        self.token_ttl = timedelta(minutes=token_ttl_minutes or config.AUTH_TOKEN_TTL_MINUTES)

    def hash_password(self, password: str) -> str:
        return pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    def create_user(self, tenant_id: str, username: str, password: str, role: str,
                    full_name: Optional[str] = None) -> str:
        user_id = str(uuid.uuid4())
        self.db.insert_one(
            user_profiles,
            {
                "id": user_id,
                "tenant_id": tenant_id,
                "role": role,
                "username": username,
                "password_hash": self.hash_password(password),
                "full_name": full_name,
                "is_active": True,
                "created_at": utcnow(),
            },
        )
        return user_id

    def authenticate(self, username: str, password: str) -> Optional[Dict[str, Any]]:
        row = self.db.fetch_one(
            select(user_profiles).where(user_profiles.c.username == username)
        )
        if not row or not row["is_active"]:
            return None

        if not self.verify_password(password, row["password_hash"]):
            return None

        return {
            "id": row["id"],
            "username": row["username"],
            "role": row["role"],
            "tenant_id": row["tenant_id"],
        }

    def issue_token(self, user_id: str) -> Tuple[str, datetime]:
        """Create an opaque bearer token. Only its digest is stored."""
        token = secrets.token_urlsafe(32)
        now = utcnow()
        expires_at = now + self.token_ttl
        self.db.insert_one(
            auth_tokens,
            {
                "token_hash": _digest(token),
                "user_id": user_id,
                "created_at": now,
                "expires_at": expires_at,
            },
        )
        return token, expires_at

    def resolve_caller(self, token: Optional[str]) -> CallerContext:
        """
        Map a bearer token to the caller's tenant and role.
        The tenant always comes from the stored profile, never from the request.
        """
        if not token:
            raise AuthenticationRequired("Missing or invalid authorization header")

        row = self.db.fetch_one(
            select(
                auth_tokens.c.expires_at,
                user_profiles.c.id,
                user_profiles.c.tenant_id,
                user_profiles.c.role,
                user_profiles.c.is_active,
            )
            .select_from(auth_tokens.join(user_profiles, auth_tokens.c.user_id == user_profiles.c.id))
            .where(auth_tokens.c.token_hash == _digest(token))
        )
        if not row:
            raise AuthenticationRequired("Invalid or expired token")
        if row["expires_at"] <= utcnow():
            raise AuthenticationRequired("Invalid or expired token")
        if not row["is_active"]:
            logger.warning("Rejected token for inactive user %s", row["id"])
            raise AuthenticationRequired("User profile not found")

        return CallerContext(user_id=row["id"], tenant_id=row["tenant_id"], role=row["role"])
