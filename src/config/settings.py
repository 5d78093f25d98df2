"""
Environment-specific configuration for the rating service.

Defaults suit local development; production widens the cache.
"""

from dataclasses import dataclass, field
import os

from models.rating import RatingWeights


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


@dataclass
class RatingSettings:
    """Rating service settings."""

    # Environment
    environment: str = "dev"

    # Composite blend
    weights: RatingWeights = field(default_factory=RatingWeights)

    # Score reported when a customer's data cannot be loaded
    fallback_score: int = 75

    # Cache Configuration
    cache_ttl_seconds: int = 300  # 5 minutes
    cache_max_size: int = 100

    @classmethod
    def from_environment(cls) -> "RatingSettings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        defaults = RatingWeights()
        weights = RatingWeights(
            payment=_env_float("RATING_WEIGHT_PAYMENT", defaults.payment),
            collaboration=_env_float("RATING_WEIGHT_COLLABORATION", defaults.collaboration),
            engagement=_env_float("RATING_WEIGHT_ENGAGEMENT", defaults.engagement),
            activity=_env_float("RATING_WEIGHT_ACTIVITY", defaults.activity),
        )

        # Production overrides
        ttl_default, size_default = (900, 1000) if env == "prod" else (300, 100)

        return cls(
            environment=env,
            weights=weights,
            fallback_score=_env_int("RATING_FALLBACK_SCORE", 75),
            cache_ttl_seconds=_env_int("RATING_CACHE_TTL_SECONDS", ttl_default),
            cache_max_size=_env_int("RATING_CACHE_MAX_SIZE", size_default),
        )
