from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from hatchr.models.base import Base


class Market(Base):
    """Latest market snapshot per token (last write wins, never historized)."""

    __tablename__ = "markets"

    token_address: Mapped[str] = mapped_column(String(42), primary_key=True)
    price_usd: Mapped[Decimal | None] = mapped_column(Numeric)
    market_cap_usd: Mapped[Decimal | None] = mapped_column(Numeric)
    liquidity_usd: Mapped[Decimal | None] = mapped_column(Numeric)
    volume_24h_usd: Mapped[Decimal | None] = mapped_column(Numeric)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
