"""
Service layer for users and their roles.

Passwords are hashed with werkzeug and never leave this module in any form;
DTOs carry no hash.  The ActorContext every other service needs is built
here from the stored role list.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from inventory_kernel.domain.access_policy import Operation
from inventory_kernel.domain.actor import ActorContext, Role
from inventory_kernel.domain.dtos import UserInfo
from inventory_kernel.exceptions import (
    DuplicateUserError,
    UnauthorizedError,
    UserNotFoundError,
    UserReferencedError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock_transaction import StockTransaction
from inventory_kernel.models.user import User
from inventory_kernel.services.base import BaseService

logger = get_logger("services.user")

MIN_PASSWORD_LENGTH = 6


def _validate_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "password", f"must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def _validate_roles(roles) -> list[str]:
    if isinstance(roles, (str, Role)):
        roles = [roles]
    values = []
    for role in roles or ():
        value = role.value if isinstance(role, Role) else str(role)
        if value not in Role.values():
            raise ValidationError("roles", f"unknown role '{value}'")
        if value not in values:
            values.append(value)
    if not values:
        raise ValidationError("roles", "at least one role is required")
    return values


class UserService(BaseService[User]):
    """
    Service for managing users.

    Contract:
        Every mutating method except ``bootstrap_super_admin`` requires the
        manage_users permission; a user may always change their own password.
    """

    def _get_by_id(self, user_id: UUID) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    def _flush_unique(self, username: str) -> None:
        try:
            with self.session.begin_nested():
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateUserError(username) from exc

    def _touch(self, user: User, actor_id: UUID | None) -> None:
        user.updated_at = self._clock.now()
        user.updated_by_id = actor_id

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    def actor_context(self, user_id: UUID) -> ActorContext:
        """
        Build the ActorContext for a user.

        Raises:
            UserNotFoundError: No such user.
            UnauthorizedError: The user is deactivated.
        """
        user = self._get_by_id(user_id)
        if not user.is_active:
            raise UnauthorizedError("login", str(user_id))
        return ActorContext(actor_id=user.id, roles=frozenset(user.roles or ()))

    def verify_credentials(self, username: str, password: str) -> UserInfo | None:
        """
        Check a username/password pair for the external login layer.

        Returns None for an unknown user, a wrong password, or an inactive
        user.
        """
        stmt = select(User).where(User.username == username)
        user = self.session.execute(stmt).scalar_one_or_none()
        if user is None or not user.is_active:
            return None
        if not check_password_hash(user.password_hash, password):
            return None
        return UserInfo.from_model(user)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def create_user(
        self,
        username: str,
        password: str,
        roles,
        actor: ActorContext,
        email: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> UserInfo:
        """
        Create a user.

        Raises:
            UnauthorizedError, ValidationError, DuplicateUserError.
        """
        self._policy.require(actor, Operation.MANAGE_USERS)
        return self._create(
            username, password, roles, actor.actor_id, email, first_name, last_name
        )

    def bootstrap_super_admin(
        self,
        username: str,
        password: str,
        email: str | None = None,
    ) -> UserInfo:
        """
        Create the first super admin of an empty installation.

        Idempotent: if a user with ``username`` already exists it is returned
        unchanged.
        """
        stmt = select(User).where(User.username == username)
        existing = self.session.execute(stmt).scalar_one_or_none()
        if existing is not None:
            logger.info("bootstrap_admin_exists", extra={"username": username})
            return UserInfo.from_model(existing)
        return self._create(
            username, password, [Role.SUPER_ADMIN], None, email, "Super", "Admin"
        )

    def _create(
        self,
        username: str,
        password: str,
        roles,
        created_by_id: UUID | None,
        email: str | None,
        first_name: str | None,
        last_name: str | None,
    ) -> UserInfo:
        username = self._required_text("username", username)
        _validate_password(password)
        role_values = _validate_roles(roles)

        now = self._clock.now()
        user = User(
            username=username,
            password_hash=generate_password_hash(password),
            email=email or None,
            first_name=first_name,
            last_name=last_name,
            roles=role_values,
            is_active=True,
            created_at=now,
            updated_at=now,
            created_by_id=created_by_id,
            updated_by_id=created_by_id,
        )
        self.session.add(user)
        self._flush_unique(username)

        logger.info(
            "user_created",
            extra={"user_id": str(user.id), "roles": role_values},
        )
        return UserInfo.from_model(user)

    def update_roles(self, user_id: UUID, roles, actor: ActorContext) -> UserInfo:
        self._policy.require(actor, Operation.MANAGE_USERS)
        role_values = _validate_roles(roles)

        user = self._get_by_id(user_id)
        user.roles = role_values
        self._touch(user, actor.actor_id)
        self.session.flush()

        logger.info(
            "user_roles_updated",
            extra={"user_id": str(user_id), "roles": role_values},
        )
        return UserInfo.from_model(user)

    def update_password(
        self, user_id: UUID, new_password: str, actor: ActorContext
    ) -> None:
        """Change a password: one's own, or anyone's with manage_users."""
        if actor.actor_id != user_id:
            self._policy.require(actor, Operation.MANAGE_USERS)
        _validate_password(new_password)

        user = self._get_by_id(user_id)
        user.password_hash = generate_password_hash(new_password)
        self._touch(user, actor.actor_id)
        self.session.flush()

        logger.info("user_password_updated", extra={"user_id": str(user_id)})

    def set_active(self, user_id: UUID, active: bool, actor: ActorContext) -> UserInfo:
        """Activate or deactivate a user.  Deactivating yourself is refused."""
        self._policy.require(actor, Operation.MANAGE_USERS)
        if not active and actor.actor_id == user_id:
            raise ValidationError("user_id", "cannot deactivate your own account")

        user = self._get_by_id(user_id)
        user.is_active = active
        self._touch(user, actor.actor_id)
        self.session.flush()

        logger.info(
            "user_activation_changed",
            extra={"user_id": str(user_id), "is_active": active},
        )
        return UserInfo.from_model(user)

    def delete_user(self, user_id: UUID, actor: ActorContext) -> None:
        """
        Hard-delete a user with no ledger history.

        Raises:
            ValidationError: Deleting yourself.
            UserReferencedError: The user appears in stock transactions;
                deactivate instead.
        """
        self._policy.require(actor, Operation.MANAGE_USERS)
        if actor.actor_id == user_id:
            raise ValidationError("user_id", "cannot delete your own account")

        user = self._get_by_id(user_id)
        count = self.session.execute(
            select(func.count())
            .select_from(StockTransaction)
            .where(StockTransaction.user_id == user_id)
        ).scalar_one()
        if count:
            raise UserReferencedError(str(user_id), count)

        self.session.delete(user)
        self.session.flush()
        logger.info("user_deleted", extra={"user_id": str(user_id)})

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_user(self, user_id: UUID, actor: ActorContext) -> UserInfo:
        if actor.actor_id != user_id:
            self._policy.require(actor, Operation.MANAGE_USERS)
        return UserInfo.from_model(self._get_by_id(user_id))

    def list_users(self, actor: ActorContext) -> list[UserInfo]:
        self._policy.require(actor, Operation.MANAGE_USERS)
        stmt = select(User).order_by(User.created_at.desc(), User.username)
        return [UserInfo.from_model(u) for u in self.session.execute(stmt).scalars()]
