"""Pydantic models for the Neynar v2 Farcaster API."""

from pydantic import BaseModel, Field


class NeynarExperimental(BaseModel):
    neynar_user_score: float | None = None

    model_config = {"extra": "ignore"}


class NeynarUser(BaseModel):
    fid: int
    username: str | None = None
    display_name: str | None = None
    pfp_url: str | None = None
    follower_count: int | None = None
    power_badge: bool = False
    score: float | None = None
    experimental: NeynarExperimental | None = None

    model_config = {"extra": "ignore"}

    @property
    def quality_score(self) -> float | None:
        if self.score is not None:
            return self.score
        if self.experimental is not None:
            return self.experimental.neynar_user_score
        return None


class NeynarNext(BaseModel):
    cursor: str | None = None

    model_config = {"extra": "ignore"}


class NeynarUsersResponse(BaseModel):
    users: list[NeynarUser] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class NeynarUserResponse(BaseModel):
    user: NeynarUser

    model_config = {"extra": "ignore"}


class NeynarFollower(BaseModel):
    user: NeynarUser

    model_config = {"extra": "ignore"}


class NeynarFollowersResponse(BaseModel):
    users: list[NeynarFollower] = Field(default_factory=list)
    next: NeynarNext | None = None

    model_config = {"extra": "ignore"}


class NeynarCastAuthor(BaseModel):
    fid: int | None = None
    username: str | None = None

    model_config = {"extra": "ignore"}


class NeynarCast(BaseModel):
    hash: str
    text: str = ""
    timestamp: str | None = None
    author: NeynarCastAuthor | None = None

    model_config = {"extra": "ignore"}


class NeynarCastSearchResult(BaseModel):
    casts: list[NeynarCast] = Field(default_factory=list)
    next: NeynarNext | None = None

    model_config = {"extra": "ignore"}


class NeynarCastSearchResponse(BaseModel):
    result: NeynarCastSearchResult = Field(default_factory=NeynarCastSearchResult)

    model_config = {"extra": "ignore"}
