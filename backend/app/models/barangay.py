# backend/app/models/barangay.py

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class Barangay(Base):
    __tablename__ = "barangays"
    __table_args__ = (
        # One barangay per captain, enforced by the DB so concurrent creates cannot both win.
        UniqueConstraint("owner_user_id", name="uq_barangays_owner_user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    contact_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    municipality: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    province: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # The captain who created it. No FK: users.barangay_id already points the other way.
    owner_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
