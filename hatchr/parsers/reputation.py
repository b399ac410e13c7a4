"""Score query: resolve a Farcaster user and compute their Hatchr Score report."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from hatchr.parsers.exceptions import HatchrError, IdentityUnresolved
from hatchr.parsers.neynar.client import NeynarClient
from hatchr.parsers.neynar.models import NeynarCast, NeynarUser
from hatchr.parsers.scoring import (
    DEFAULT_SCORE_CONFIG,
    FollowerSample,
    FollowersQuality,
    HatchrScore,
    ScoreConfig,
    compute_followers_quality,
    compute_followers_score_size_aware,
    compute_hatchr_score,
)
from hatchr.parsers.token_types import parse_timestamp

MENTION_CASTS_LIMIT = 5
CACHE_PREFIX = "score"

CTX_PREANNOUNCED = "ongoing_build_or_preannounced"
CTX_NO_TIMESTAMP = "mentioned_but_no_timestamp_context"
CTX_FRESH = "fresh_launch_or_unknown"


@dataclass
class ScoreReport:
    fid: int
    username: str | None
    follower_count: int | None
    creator_score: float | None
    followers_quality: float | None
    hatchr_score: float | None
    hatchr_score_percent: int | None
    score_version: str
    followers_analytics: dict = field(default_factory=dict)
    token_mentions: dict | None = None
    creator_context: dict | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _cast_to_dict(cast: NeynarCast) -> dict:
    username = cast.author.username if cast.author else None
    return {
        "hash": cast.hash,
        "text": cast.text,
        "timestamp": cast.timestamp,
        "author": {
            "fid": cast.author.fid if cast.author else None,
            "username": username,
        },
        "farcasterUrl": f"https://warpcast.com/{username}/{cast.hash[:10]}" if username else None,
    }


def _cache_key(
    fid: int,
    address: str | None,
    name: str | None,
    symbol: str | None,
    created_at: datetime | None,
) -> str:
    """Every token parameter that shapes the report is part of the key."""
    parts = [
        address or "-",
        (symbol or "").lstrip("$").upper() or "-",
        (name or "").strip().lower() or "-",
        created_at.isoformat() if created_at else "-",
    ]
    return f"{CACHE_PREFIX}:{fid}:" + ":".join(parts)


def classify_creator_context(
    creator_casts: list[NeynarCast], token_created_at: datetime | None
) -> str:
    """How the creator talked about the token relative to its launch time."""
    if not creator_casts:
        return CTX_FRESH
    if token_created_at is None:
        return CTX_NO_TIMESTAMP
    for cast in creator_casts:
        ts = parse_timestamp(cast.timestamp)
        if ts is not None and ts < token_created_at:
            return CTX_PREANNOUNCED
    return CTX_FRESH


class ReputationService:
    def __init__(
        self,
        neynar: NeynarClient,
        *,
        redis: Redis | None = None,
        config: ScoreConfig = DEFAULT_SCORE_CONFIG,
        cache_ttl_sec: int = 600,
    ) -> None:
        self._neynar = neynar
        self._redis = redis
        self._config = config
        self._cache_ttl = cache_ttl_sec

    async def resolve_user(self, *, fid: int | None = None, username: str | None = None) -> NeynarUser:
        user = None
        if fid is not None:
            user = await self._neynar.get_user_by_fid(fid)
        elif username:
            user = await self._neynar.get_user_by_username(username)
        if user is None:
            raise IdentityUnresolved(f"no Farcaster user for fid={fid} username={username}")
        return user

    async def sample_followers(self, fid: int) -> tuple[list[NeynarUser], FollowersQuality]:
        try:
            followers = await self._neynar.get_followers(fid, self._config.follower_sample_size)
        except HatchrError as e:
            logger.warning(f"[SCORE] followers fetch failed for fid={fid}: {e}")
            followers = []
        sample = [FollowerSample(score=f.quality_score, power_badge=f.power_badge) for f in followers]
        return followers, compute_followers_quality(sample, self._config)

    async def hatchr_score(self, fid: int) -> HatchrScore:
        """Composite score for a creator, used by the alert scan."""
        user = await self.resolve_user(fid=fid)
        _, quality = await self.sample_followers(user.fid)
        return compute_hatchr_score(user.quality_score, quality.followers_quality, self._config)

    async def score_report(
        self,
        *,
        fid: int | None = None,
        username: str | None = None,
        address: str | None = None,
        token_created_at: datetime | None = None,
        token_name: str | None = None,
        token_symbol: str | None = None,
    ) -> ScoreReport:
        user = await self.resolve_user(fid=fid, username=username)
        address = (address or "").lower() or None
        cache_key = _cache_key(user.fid, address, token_name, token_symbol, token_created_at)

        cached = await self._cache_get(cache_key)
        if cached is not None:
            return cached

        followers, quality = await self.sample_followers(user.fid)
        score = compute_hatchr_score(user.quality_score, quality.followers_quality, self._config)
        size_aware = compute_followers_score_size_aware(
            [f.quality_score for f in followers], self._config.size_ref_followers
        )

        report = ScoreReport(
            fid=user.fid,
            username=user.username,
            follower_count=user.follower_count,
            creator_score=score.creator_score,
            followers_quality=score.followers_quality,
            hatchr_score=score.hatchr_score,
            hatchr_score_percent=score.as_percent(),
            score_version=score.version,
            followers_analytics={
                "sample_size": quality.sample_size,
                "scored_count": quality.scored_count,
                "avg_follower_score": quality.avg_follower_score,
                "power_badge_ratio": quality.power_badge_ratio,
                "followers_score_size_aware": size_aware.followers_score,
                "size_factor": size_aware.size_factor,
                "score_version": self._config.version,
            },
            token_mentions=await self._token_mentions(address, token_symbol),
            creator_context=await self._creator_context(
                user.fid, token_name, token_symbol, token_created_at
            ),
        )
        await self._cache_set(cache_key, report)
        return report

    async def _token_mentions(self, address: str | None, symbol: str | None) -> dict | None:
        queries = []
        if symbol:
            queries.append(f"${symbol.lstrip('$').upper()}")
        if address:
            queries.append(address)
        if not queries:
            return None

        casts: dict[str, NeynarCast] = {}
        try:
            for query in queries:
                for cast in await self._neynar.search_casts(query):
                    casts.setdefault(cast.hash, cast)
        except HatchrError as e:
            logger.debug(f"[SCORE] mention search failed: {e}")
            return None

        ordered = sorted(casts.values(), key=lambda c: c.timestamp or "", reverse=True)
        authors = {c.author.fid for c in ordered if c.author and c.author.fid is not None}
        return {
            "mentions_count": len(ordered),
            "unique_authors": len(authors),
            "casts": [_cast_to_dict(c) for c in ordered[:MENTION_CASTS_LIMIT]],
        }

    async def _creator_context(
        self,
        fid: int,
        name: str | None,
        symbol: str | None,
        created_at: datetime | None,
    ) -> dict | None:
        terms = [t for t in (symbol and f"${symbol.lstrip('$')}", name) if t]
        if not terms:
            return None
        matched: dict[str, NeynarCast] = {}
        try:
            for term in terms:
                for cast in await self._neynar.search_casts(term, author_fid=fid):
                    matched.setdefault(cast.hash, cast)
        except HatchrError as e:
            logger.debug(f"[SCORE] creator context search failed: {e}")
            return None

        casts = list(matched.values())
        timestamps = [ts for ts in (parse_timestamp(c.timestamp) for c in casts) if ts]
        return {
            "classification": classify_creator_context(casts, created_at),
            "creator_mentions": len(casts),
            "earliest_mention_at": min(timestamps).isoformat() if timestamps else None,
        }

    # --- cache ---

    async def _cache_get(self, key: str) -> ScoreReport | None:
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            logger.debug(f"[SCORE] cache read failed: {e}")
            return None
        if not raw:
            return None
        try:
            return ScoreReport(**json.loads(raw))
        except (TypeError, ValueError):
            return None

    async def _cache_set(self, key: str, report: ScoreReport) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(key, json.dumps(report.to_dict()), ex=self._cache_ttl)
        except RedisError as e:
            logger.debug(f"[SCORE] cache write failed: {e}")
