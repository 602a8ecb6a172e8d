"""
Authentication service.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conservatory.core.auth.context import AuthContext
from conservatory.core.config import settings
from conservatory.core.errors import Forbidden, Unauthenticated
from conservatory.models.audit_log import AuditAction, AuditSeverity
from conservatory.models.user import StatusName, User
from conservatory.schemas.audit_log import AuditEntry
from conservatory.schemas.auth import TokenResponse
from conservatory.services.audit import AuditService
from conservatory.utils.context import set_context_user
from conservatory.utils.timezone import utc_now

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=settings.auth.password_schemes, deprecated="auto")

ANONYMOUS_ROLE = "ANONYMOUS"


class AuthService:
    """Authentication service."""

    def __init__(self, db: AsyncSession, audit: Optional[AuditService] = None):
        self.db = db
        self.audit = audit

    def hash_password(self, password: str) -> str:
        """Hash a password."""
        return pwd_context.hash(password)

    def verify_password(self, plain: str, hashed: str) -> bool:
        """Verify password against hash."""
        return pwd_context.verify(plain, hashed)

    def create_access_token(self, user: User) -> str:
        """Create JWT access token carrying the role's current permissions."""
        expire = utc_now() + timedelta(
            minutes=settings.auth.access_token_expire_minutes
        )
        payload = {
            "sub": str(user.id),
            "role": user.role.name,
            "permissions": user.role.permission_names,
            "token_version": user.token_version,
            "exp": expire,
            "type": "access",
        }
        return jwt.encode(
            payload,
            settings.auth.secret_key,
            algorithm=settings.auth.algorithm,
        )

    def _audit(self, entry: AuditEntry) -> None:
        if self.audit:
            self.audit.submit(entry)

    async def login(self, email: str, password: str) -> TokenResponse:
        """
        Authenticate a user and issue an access token.

        Raises:
            Unauthenticated: If the credentials are wrong or the account is
                archived or not ACTIVE
        """
        stmt = select(User).where(User.email == email.lower())
        result = await self.db.execute(stmt)
        user = result.scalar_one_or_none()

        if not user or not self.verify_password(password, user.password_hash) or not user.is_active:
            logger.warning("Login failed", email=email)
            self._audit(AuditEntry(
                action=AuditAction.LOGIN_FAILED,
                severity=AuditSeverity.WARNING,
                performed_by=user.id if user else None,
                performer_role=user.role.name if user else ANONYMOUS_ROLE,
                target_model="User",
                target_id=user.id if user else None,
                description=f"Failed login for {email}",
                metadata={"email": email},
            ))
            raise Unauthenticated("Invalid credentials")

        user.last_login_at = utc_now()
        await self.db.flush()

        token = self.create_access_token(user)
        self._audit(AuditEntry(
            action=AuditAction.LOGIN_SUCCESS,
            performed_by=user.id,
            performer_role=user.role.name,
            target_model="User",
            target_id=user.id,
            description=f"User {user.email} logged in",
        ))
        return TokenResponse(
            access_token=token,
            expires_in=settings.auth.access_token_expire_minutes * 60,
        )

    async def resolve_context(self, token: str) -> AuthContext:
        """
        Turn a bearer token into the caller's AuthContext.

        Raises:
            Unauthenticated: If the token is invalid or expired, the user is
                gone or archived, or the token predates a change to the user
                or the user's role
            Forbidden: If the user's role is deactivated or their status is
                anything but ACTIVE
        """
        try:
            payload = jwt.decode(
                token,
                settings.auth.secret_key,
                algorithms=[settings.auth.algorithm],
            )
            if payload.get("type") != "access":
                raise Unauthenticated("Invalid token")
            user_id = UUID(payload["sub"])
        except (JWTError, KeyError, ValueError):
            raise Unauthenticated("Invalid or expired token")

        stmt = (
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        user = result.scalar_one_or_none()

        if not user or user.is_deleted:
            raise Unauthenticated("User not found or archived")

        if payload.get("token_version") != user.token_version:
            raise Unauthenticated("Session has expired. Please login again.")

        if user.role is None or not user.role.is_active:
            raise Forbidden("User role is inactive or missing.")

        if user.status is not None and user.status.name != StatusName.ACTIVE.value:
            raise Forbidden(f"Account is {user.status.name}. Please contact administrator.")

        if sorted(payload.get("permissions") or []) != user.role.permission_names:
            raise Unauthenticated("Permissions have changed. Please login again.")

        set_context_user(str(user.id))
        return AuthContext.build(user.id, user.role.name, user.role.permission_names)
