from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from hatchr.models.base import Base


class NotificationSubscriber(Base):
    """Mini-app notification token registered by a user's client."""

    __tablename__ = "miniapp_notification_tokens"

    fid: Mapped[int] = mapped_column(Integer, primary_key=True)
    token: Mapped[str] = mapped_column(String(255), primary_key=True)
    url: Mapped[str] = mapped_column(String(1024))
    status: Mapped[str] = mapped_column(String(20), default="enabled")  # enabled | disabled
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (Index("idx_notification_tokens_status", "status"),)
