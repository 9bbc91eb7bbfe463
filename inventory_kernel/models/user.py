"""
Module: inventory_kernel.models.user
Responsibility: ORM persistence for application users: credentials hash,
    identity fields and role memberships.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - username is unique; email is unique when present.
    - roles is a JSON list of role strings (validated by the user service).

Failure modes:
    - IntegrityError on duplicate username or email.
"""

from sqlalchemy import JSON, Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class User(TrackedBase):
    """
    An operator of the inventory system.

    Guarantees:
        - password_hash is never the plaintext password.
        - is_active False blocks every stock movement by this user.
    """

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("email", name="uq_users_email"),
    )

    username: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    first_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    last_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    roles: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.username} roles={self.roles}>"
