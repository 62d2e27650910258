"""
Back Office — User accounts, registration and password tokens
"""
import logging
import secrets
from datetime import timedelta

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import Settings, get_settings
from backoffice.core.exceptions import (
    DuplicateEntity,
    InvalidCredentials,
    InvalidOperation,
    NotFound,
)
from backoffice.core.security import hash_password, verify_password
from backoffice.db.pagination import PageResult, paginate
from backoffice.integrations.mailer import Mailer
from backoffice.models.audit import AuditAction
from backoffice.models.common import as_utc, new_id, utcnow
from backoffice.models.user import PasswordToken, Role, TokenPurpose, User
from backoffice.schemas.user import (
    RegisterRequest,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from backoffice.services.audit_service import AuditService, snapshot

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        db: AsyncSession,
        audit: AuditService,
        mailer: Mailer | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.audit = audit
        self.mailer = mailer
        self.settings = settings or get_settings()

    # ─── Lookup ───────────────────────────────────────────────────────────────

    async def get(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFound.entity("User", user_id)
        return user

    async def get_by_username(self, username: str) -> User:
        user = await self.db.scalar(select(User).where(User.username == username))
        if user is None:
            raise NotFound.entity("User", username)
        return user

    async def search(
        self,
        text: str | None = None,
        is_active: bool | None = None,
        page: int = 0,
        size: int = 20,
    ) -> PageResult:
        stmt = select(User).order_by(User.last_name, User.first_name)
        if text:
            pattern = f"%{text}%"
            stmt = stmt.where(
                or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern))
            )
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
        return await paginate(self.db, stmt, page, size)

    async def authenticate(self, username: str, password: str) -> User:
        user = await self.db.scalar(select(User).where(User.username == username))
        if user is None or not verify_password(password, user.hashed_password):
            raise InvalidCredentials("Invalid username or password.")
        if not user.is_active:
            raise InvalidCredentials("Account is not active.")
        return user

    # ─── Creation ─────────────────────────────────────────────────────────────

    async def _ensure_unique(self, username: str | None, email: str | None, exclude_id: str | None = None) -> None:
        clauses = []
        if username:
            clauses.append(User.username == username)
        if email:
            clauses.append(User.email == email)
        if not clauses:
            return
        stmt = select(User.id).where(or_(*clauses))
        if exclude_id:
            stmt = stmt.where(User.id != exclude_id)
        if await self.db.scalar(stmt):
            raise DuplicateEntity("Username or e-mail already registered.")

    def _new_user(self, payload: RegisterRequest, roles: list[str]) -> User:
        address = payload.address
        return User(
            username=payload.username,
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            street=address.street if address else None,
            city=address.city if address else None,
            postal_code=address.postal_code if address else None,
            country=address.country if address else "France",
            # Unusable until the user sets their own through the mailed token.
            hashed_password=hash_password(secrets.token_urlsafe(24)),
            roles=roles,
            is_active=False,
        )

    def _issue_token(self, user: User, purpose: TokenPurpose) -> PasswordToken:
        token = PasswordToken(
            token=new_id(),
            user_id=user.id,
            purpose=purpose,
            expires_at=utcnow() + timedelta(minutes=self.settings.PASSWORD_TOKEN_TTL_MINUTES),
        )
        self.db.add(token)
        return token

    async def _create_pending_user(self, payload: RegisterRequest, roles: list[str], actor: str) -> User:
        """
        Persist an inactive user and mail a password-creation link. If the
        mail cannot be sent the user is deleted again and the error re-raised.
        """
        await self._ensure_unique(payload.username, payload.email)
        user = self._new_user(payload, roles)
        self.db.add(user)
        await self.db.flush()
        token = self._issue_token(user, TokenPurpose.CREATE)
        self.audit.record(
            actor, AuditAction.CREATE, "User", user.id,
            f"User '{user.username}' created with roles {roles}",
            new_data=snapshot(user, UserResponse),
        )
        await self.db.commit()

        try:
            if self.mailer is None:
                raise RuntimeError("No mailer configured.")
            await self.mailer.send_password_creation(user, token.token)
        except Exception:
            logger.error("Password-creation mail to %s failed, removing user %s", user.email, user.username)
            await self.db.execute(delete(PasswordToken).where(PasswordToken.user_id == user.id))
            await self.db.delete(user)
            await self.db.commit()
            raise
        logger.info("User %s created by %s, password-creation mail sent", user.username, actor)
        return user

    async def create_user(self, payload: UserCreateRequest, actor: str) -> User:
        return await self._create_pending_user(payload, [role.value for role in payload.roles], actor)

    async def register(self, payload: RegisterRequest) -> User:
        return await self._create_pending_user(payload, [Role.CLIENT.value], payload.username)

    # ─── Passwords ────────────────────────────────────────────────────────────

    async def set_password_with_token(self, token_value: str, password: str) -> User:
        token = await self.db.get(PasswordToken, token_value)
        if token is None or token.used:
            raise InvalidOperation("Invalid or already used token.")
        if as_utc(token.expires_at) < utcnow():
            raise InvalidOperation("Token has expired.")
        user = await self.get(token.user_id)
        user.hashed_password = hash_password(password)
        user.is_active = True
        token.used = True
        self.audit.record(
            user.username, AuditAction.UPDATE, "User", user.id,
            f"Password set through {token.purpose.value.lower()} token",
        )
        await self.db.commit()
        logger.info("User %s set a password and is now active", user.username)
        return user

    async def request_password_reset(self, email: str) -> None:
        user = await self.db.scalar(select(User).where(User.email == email))
        if user is None:
            # Same answer either way so the endpoint does not reveal accounts.
            logger.info("Password reset requested for unknown e-mail")
            return
        token = self._issue_token(user, TokenPurpose.RESET)
        await self.db.commit()
        if self.mailer is None:
            raise RuntimeError("No mailer configured.")
        await self.mailer.send_password_reset(user, token.token)

    async def change_password(self, username: str, current_password: str, new_password: str) -> None:
        user = await self.get_by_username(username)
        if not verify_password(current_password, user.hashed_password):
            raise InvalidCredentials("Current password is incorrect.")
        user.hashed_password = hash_password(new_password)
        self.audit.record(username, AuditAction.UPDATE, "User", user.id, "Password changed")
        await self.db.commit()

    # ─── Updates ──────────────────────────────────────────────────────────────

    async def update(self, user: User, payload: UserUpdateRequest, actor: str, allow_roles: bool) -> User:
        before = snapshot(user, UserResponse)
        changes = payload.model_dump(exclude_unset=True, exclude={"address", "roles"})
        if "email" in changes and changes["email"] != user.email:
            await self._ensure_unique(None, changes["email"], exclude_id=user.id)
        for field, value in changes.items():
            setattr(user, field, value)
        if payload.address is not None:
            user.street = payload.address.street
            user.city = payload.address.city
            user.postal_code = payload.address.postal_code
            user.country = payload.address.country
        if payload.roles is not None:
            if not allow_roles:
                raise InvalidOperation("Roles can only be changed by an administrator.")
            user.roles = [role.value for role in payload.roles]
        await self.db.flush()
        self.audit.record(
            actor, AuditAction.UPDATE, "User", user.id, f"User '{user.username}' updated",
            old_data=before, new_data=snapshot(user, UserResponse),
        )
        await self.db.commit()
        return user

    async def update_status(self, user_id: str, is_active: bool, actor: str) -> User:
        user = await self.get(user_id)
        user.is_active = is_active
        self.audit.record(
            actor, AuditAction.UPDATE_STATUS, "User", user.id,
            f"User '{user.username}' {'activated' if is_active else 'deactivated'}",
            new_data={"is_active": is_active},
        )
        await self.db.commit()
        return user

    async def delete(self, user_id: str, actor: str) -> None:
        user = await self.get(user_id)
        before = snapshot(user, UserResponse)
        await self.db.execute(delete(PasswordToken).where(PasswordToken.user_id == user.id))
        await self.db.delete(user)
        self.audit.record(
            actor, AuditAction.DELETE, "User", user_id, f"User '{user.username}' deleted", old_data=before,
        )
        await self.db.commit()
        logger.info("User %s deleted by %s", before["username"], actor)
