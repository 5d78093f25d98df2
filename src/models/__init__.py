"""Pydantic models for rating snapshots and results."""

from models.rating import (  # noqa: F401
    ActivityContext,
    ActivityType,
    CustomerActivity,
    CustomerRatingData,
    Feedback,
    Invoice,
    Project,
    RatingBreakdown,
    RatingCategory,
    RatingWeights,
    Receipt,
    ServiceAgreement,
)
