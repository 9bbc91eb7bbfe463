"""
Module: inventory_kernel.models.session_record
Responsibility: Table for the web tier's server-side login sessions.  The
    kernel creates it alongside the ledger tables and never reads it.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from datetime import datetime

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime


class SessionRecord(Base):
    """Opaque session blob keyed by session id."""

    __tablename__ = "sessions"

    __table_args__ = (
        Index("idx_sessions_expire", "expire"),
    )

    # Session id issued by the web tier, stored in the "sid" column
    id: Mapped[str] = mapped_column(
        "sid",
        String(255),
        primary_key=True,
    )

    sess: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
    )

    expire: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )
