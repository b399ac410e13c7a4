"""Pydantic models for the Zora SDK explore API."""

from pydantic import BaseModel, Field


class ZoraSocialAccount(BaseModel):
    username: str | None = None

    model_config = {"extra": "ignore"}


class ZoraSocialAccounts(BaseModel):
    farcaster: ZoraSocialAccount | None = None
    twitter: ZoraSocialAccount | None = None

    model_config = {"extra": "ignore"}


class ZoraImage(BaseModel):
    url: str | None = None

    model_config = {"extra": "ignore"}


class ZoraAvatar(BaseModel):
    url: str | None = None
    previewImage: ZoraImage | None = None

    model_config = {"extra": "ignore"}


class ZoraCreatorProfile(BaseModel):
    handle: str | None = None
    socialAccounts: ZoraSocialAccounts | None = None
    avatar: ZoraAvatar | None = None

    model_config = {"extra": "ignore"}


class ZoraCoin(BaseModel):
    address: str | None = None
    name: str | None = None
    symbol: str | None = None
    chainId: int | None = None
    createdAt: str | None = None
    creatorAddress: str | None = None
    imageUrl: str | None = None
    mediaContent: ZoraImage | None = None
    creatorProfile: ZoraCreatorProfile | None = None

    model_config = {"extra": "ignore"}


class ZoraEdge(BaseModel):
    node: ZoraCoin | None = None

    model_config = {"extra": "ignore"}


class ZoraPageInfo(BaseModel):
    endCursor: str | None = None
    hasNextPage: bool = False

    model_config = {"extra": "ignore"}


class ZoraExploreList(BaseModel):
    edges: list[ZoraEdge] = Field(default_factory=list)
    pageInfo: ZoraPageInfo = Field(default_factory=ZoraPageInfo)

    model_config = {"extra": "ignore"}


class ZoraExplorePage(BaseModel):
    exploreList: ZoraExploreList = Field(default_factory=ZoraExploreList)

    model_config = {"extra": "ignore"}
