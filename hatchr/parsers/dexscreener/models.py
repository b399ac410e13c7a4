from decimal import Decimal

from pydantic import BaseModel, Field


class DexScreenerToken(BaseModel):
    address: str = ""
    symbol: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerVolume(BaseModel):
    h1: Decimal | None = None
    h24: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerLiquidity(BaseModel):
    usd: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerPair(BaseModel):
    chainId: str = ""
    dexId: str = ""
    pairAddress: str = ""
    baseToken: DexScreenerToken | None = None
    priceUsd: str | None = None
    volume: DexScreenerVolume | None = None
    liquidity: DexScreenerLiquidity | None = None
    marketCap: Decimal | None = None
    fdv: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerTokensResponse(BaseModel):
    pairs: list[DexScreenerPair] | None = Field(default=None)

    model_config = {"extra": "ignore"}
