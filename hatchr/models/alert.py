from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from hatchr.models.base import Base


class TokenAlertState(Base):
    """Per-token alert flags. Both flags only ever go false → true."""

    __tablename__ = "token_alert_state"

    token_address: Mapped[str] = mapped_column(String(42), primary_key=True)
    alerted_score_90: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false")
    )
    alerted_vol_1000: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class NotifyCursor(Base):
    """Single-row watermark for the alert scan (id is always 1)."""

    __tablename__ = "notify_cursor"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
