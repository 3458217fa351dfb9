from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class ItemCode(Base):
    """
    One row per integer code ever minted.

    Rows are never deleted; releasing a code flips `assigned` back to false so the
    allocator can hand it out again before minting a new one.
    """

    __tablename__ = "item_codes"

    code: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    assigned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    # No FK: a released code outlives the item it belonged to.
    item_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
