from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from hatchr.models.base import Base


class SocialSignal(Base):
    """A cast accepted by the webhook intake (mentions a ticker or contract)."""

    __tablename__ = "social_signals"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    cast_hash: Mapped[str] = mapped_column(String(100), unique=True)
    cast_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    warpcast_url: Mapped[str | None] = mapped_column(String(500))

    text: Mapped[str | None] = mapped_column(Text)
    author_fid: Mapped[int | None] = mapped_column(Integer)
    author_username: Mapped[str | None] = mapped_column(String(100))
    author_display_name: Mapped[str | None] = mapped_column(String(255))
    author_pfp_url: Mapped[str | None] = mapped_column(String(1000))
    author_score: Mapped[float | None] = mapped_column(Float)

    tickers: Mapped[list[str]] = mapped_column(ARRAY(String), default=list)
    contracts: Mapped[list[str]] = mapped_column(ARRAY(String), default=list)

    raw: Mapped[dict | None] = mapped_column(JSON)

    __table_args__ = (
        Index("social_signals_created_at_idx", "created_at"),
        Index("social_signals_cast_timestamp_idx", "cast_timestamp"),
        Index("social_signals_author_fid_idx", "author_fid"),
    )
