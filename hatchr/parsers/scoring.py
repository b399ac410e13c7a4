"""Hatchr Score: creator reputation blended with follower quality.

All weights and thresholds live in ``ScoreConfig`` so a formula change is a
new config version rather than an edit scattered across call sites.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class ScoreConfig:
    version: str = "v1"
    creator_weight: float = 0.6
    followers_weight: float = 0.4
    avg_follower_weight: float = 0.85
    power_badge_weight: float = 0.15
    score_alert_threshold: float = 0.9
    volume_alert_threshold_usd: float = 1000.0
    follower_sample_size: int = 150
    size_ref_followers: int = 1000


DEFAULT_SCORE_CONFIG = ScoreConfig()


@dataclass(frozen=True)
class FollowerSample:
    score: float | None = None
    power_badge: bool = False


@dataclass(frozen=True)
class FollowersQuality:
    sample_size: int
    scored_count: int
    avg_follower_score: float | None
    power_badge_ratio: float | None
    followers_quality: float | None


@dataclass(frozen=True)
class HatchrScore:
    creator_score: float | None
    followers_quality: float | None
    hatchr_score: float | None
    version: str = DEFAULT_SCORE_CONFIG.version

    def as_percent(self) -> int | None:
        if self.hatchr_score is None:
            return None
        return round(self.hatchr_score * 100)


@dataclass(frozen=True)
class SizeAwareFollowersScore:
    follower_count: int
    mean_follower_score: float
    size_factor: float
    followers_score: float


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _valid_score(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def compute_followers_quality(
    sample: Sequence[FollowerSample],
    config: ScoreConfig = DEFAULT_SCORE_CONFIG,
) -> FollowersQuality:
    """Aggregate a follower sample.

    Unscored followers are left out of the average but still count toward
    the power-badge ratio. Quality is None only for an empty sample; when
    nobody is scored it rests on the power-badge term alone.
    """
    size = len(sample)
    scores = [s for s in (_valid_score(f.score) for f in sample) if s is not None]
    if size == 0:
        return FollowersQuality(0, 0, None, None, None)

    power_ratio = sum(1 for f in sample if f.power_badge) / size
    if not scores:
        quality = clamp01(config.power_badge_weight * power_ratio)
        return FollowersQuality(size, 0, None, power_ratio, quality)

    avg = sum(scores) / len(scores)
    quality = clamp01(
        config.avg_follower_weight * avg + config.power_badge_weight * power_ratio
    )
    return FollowersQuality(size, len(scores), avg, power_ratio, quality)


def compute_hatchr_score(
    creator_score: float | None,
    followers_quality: float | None,
    config: ScoreConfig = DEFAULT_SCORE_CONFIG,
) -> HatchrScore:
    """Weighted composite; degrades to whichever input is present."""
    creator = _valid_score(creator_score)
    followers = _valid_score(followers_quality)

    if creator is not None and followers is not None:
        value = clamp01(config.creator_weight * creator + config.followers_weight * followers)
    elif creator is not None:
        value = clamp01(creator)
    elif followers is not None:
        value = clamp01(followers)
    else:
        value = None

    return HatchrScore(
        creator_score=creator,
        followers_quality=followers,
        hatchr_score=value,
        version=config.version,
    )


def compute_followers_score_size_aware(
    scores: Iterable[float | None],
    max_ref: int = DEFAULT_SCORE_CONFIG.size_ref_followers,
) -> SizeAwareFollowersScore:
    """Audience-size weighted follower score.

    Missing scores count as 0 here, so a large unscored audience drags the
    mean down. An empty list scores zero across the board.
    """
    values = [_valid_score(s) or 0.0 for s in scores]
    n = len(values)
    if n == 0:
        return SizeAwareFollowersScore(0, 0.0, 0.0, 0.0)

    mean = sum(values) / n
    size_factor = clamp01(math.log10(n + 1) / math.log10(max_ref + 1)) if max_ref > 0 else 1.0
    followers_score = clamp01(mean * (0.5 + 0.5 * size_factor))
    return SizeAwareFollowersScore(n, mean, size_factor, followers_score)
