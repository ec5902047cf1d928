import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    CONSUMED = "consumed"
    EXPIRED = "expired"


class Invitation(Base):
    __tablename__ = "invitations"
    __table_args__ = (
        UniqueConstraint("code", name="uq_invitations_code"),
        # At most one pending invitation per (barangay, email).
        Index(
            "uq_invitations_pending_barangay_email",
            "barangay_id",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        # NULLs never collide above; captain invites carry no barangay.
        Index(
            "uq_invitations_pending_captain_email",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending' AND barangay_id IS NULL"),
            sqlite_where=text("status = 'pending' AND barangay_id IS NULL"),
        ),
        Index("ix_invitations_barangay_created_at", "barangay_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    code: Mapped[str] = mapped_column(String(16), nullable=False)

    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(40), nullable=False)

    # Grantor's barangay for member roles; NULL for captain invites
    barangay_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("barangays.id", ondelete="CASCADE"),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=InvitationStatus.PENDING.value
    )

    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    accepted_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
