"""
Customer rating calculators.

Four independent heuristics each map a CustomerRatingData snapshot to a
0-100 score; a weighted blend turns them into one composite rating and a
threshold table maps that rating to a display category.

Every function here is pure and total: empty collections and zero
denominators resolve to a fixed default score instead of raising.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from models.rating import (
    ActivityContext,
    ActivityType,
    CustomerRatingData,
    RatingBreakdown,
    RatingCategory,
    RatingWeights,
)
from utils.logging_config import get_logger
from utils.validators import weights_sum_to_one

logger = get_logger(__name__)

NEUTRAL_SCORE = 50.0
MONTH = timedelta(days=30)
RECENT_WINDOW = timedelta(days=30)

# Invoices are business critical, so their email events count extra.
INVOICE_EMAIL_WEIGHT = 1.5
LINK_CLICK_WEIGHT = 1.5

DEFAULT_WEIGHTS = RatingWeights()

# Checked top-down; lower bounds are inclusive.
RATING_CATEGORIES = (
    (85, RatingCategory(category="Excellent", color="#22c55e", description="Outstanding", range="85-100%")),
    (70, RatingCategory(category="Good", color="#eab308", description="Above Average", range="70-84%")),
    (55, RatingCategory(category="Average", color="#f97316", description="Acceptable", range="55-69%")),
    (40, RatingCategory(category="Below Average", color="#dc2626", description="Needs Improvement", range="40-54%")),
)
POOR_CATEGORY = RatingCategory(category="Poor", color="#dc2626", description="Critical", range="0-39%")


def _clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    return min(max(value, lower), upper)


def round_score(value: float) -> int:
    """Round half up, so 42.5 becomes 43."""
    return int(math.floor(value + 0.5))


def _utc_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _tenure_months(data: CustomerRatingData, now: datetime) -> float:
    return (now - data.customer_created_at) / MONTH


def calculate_email_engagement_rate(data: CustomerRatingData) -> float:
    """
    How actively the customer opens and clicks the emails we send.

    Formula: (viewed + clicked * 1.5) / sent * 100 over all contexts, with
    invoice events weighted 1.5x. Customers with no sent emails get 50.
    """
    total_sent = 0.0
    total_viewed = 0.0
    total_clicked = 0.0

    for context in ActivityContext:
        weight = INVOICE_EMAIL_WEIGHT if context is ActivityContext.INVOICE else 1.0
        total_sent += data.count_activities(f"{context.value}_sent") * weight
        total_viewed += data.count_activities(f"{context.value}_viewed") * weight
        total_clicked += data.count_activities(f"{context.value}_link_clicked") * weight

    if total_sent == 0:
        return NEUTRAL_SCORE

    engagement = ((total_viewed + total_clicked * LINK_CLICK_WEIGHT) / total_sent) * 100
    return _clamp(engagement)


def calculate_payment_reliability_score(
    data: CustomerRatingData, now: Optional[datetime] = None
) -> float:
    """
    Financial trustworthiness from invoice history.

    Core score: completion ratio (50 pts) + on-time ratio (25 pts, 12.5 when
    nothing has been paid yet) - 5 pts per overdue notice (max 25). An
    activity bonus (up to 15) and a diversity bonus (up to 10) are added on
    top. The result never drops below 50 once the customer has an invoice.
    """
    total_invoices = len(data.invoices)
    if total_invoices == 0:
        return NEUTRAL_SCORE

    paid_invoices = sum(1 for invoice in data.invoices if invoice.is_paid)
    overdue_notices = data.count_activities(ActivityType.INVOICE_OVERDUE)

    on_time_payments = 0
    total_payments = 0
    for invoice in data.invoices:
        if invoice.paid_on is None:
            continue
        total_payments += 1
        if invoice.due_date is not None and invoice.paid_on <= invoice.due_date:
            on_time_payments += 1

    completion_score = (paid_invoices / total_invoices) * 50
    on_time_score = (on_time_payments / total_payments) * 25 if total_payments > 0 else 12.5
    overdue_penalty = min(overdue_notices * 5, 25)
    core_score = completion_score + on_time_score - overdue_penalty

    tenure_months = max(_tenure_months(data, _utc_now(now)), 1)
    record_groups = (data.invoices, data.projects, data.receipts, data.feedbacks)
    total_records = sum(len(group) for group in record_groups)
    activity_bonus = min((total_records / tenure_months) * 2, 15)
    diversity_bonus = (sum(1 for group in record_groups if group) / len(record_groups)) * 10

    return _clamp(core_score + activity_bonus + diversity_bonus, lower=NEUTRAL_SCORE)


def calculate_project_collaboration_score(data: CustomerRatingData) -> float:
    """Agreement signing (40), feedback returns (35) and project email engagement (25)."""
    agreements_sent = data.count_activities(ActivityType.AGREEMENT_SENT)
    agreements_signed = data.count_activities(ActivityType.AGREEMENT_SIGNED)
    if agreements_sent > 0:
        agreement_score = (agreements_signed / agreements_sent) * 40
    else:
        agreement_score = 20.0

    feedback_requested = data.count_activities(ActivityType.FEEDBACK_REQUESTED)
    feedback_received = data.count_activities(ActivityType.FEEDBACK_RECEIVED)
    if feedback_requested > 0:
        feedback_score = (feedback_received / feedback_requested) * 35
    else:
        feedback_score = 17.5

    projects_sent = data.count_activities(ActivityType.PROJECT_SENT)
    projects_viewed = data.count_activities(ActivityType.PROJECT_VIEWED)
    projects_clicked = data.count_activities(ActivityType.PROJECT_LINK_CLICKED)
    if projects_sent > 0:
        engagement_rate = (projects_viewed + projects_clicked * LINK_CLICK_WEIGHT) / projects_sent
        project_score = min(engagement_rate * 25, 25)
    else:
        project_score = 12.5

    return _clamp(agreement_score + feedback_score + project_score)


def calculate_activity_longevity_score(
    data: CustomerRatingData, now: Optional[datetime] = None
) -> float:
    """
    Relationship strength from tenure and activity.

    2 pts per month of tenure (max 20), 0.5 pts per activity (max 30),
    4 pts per distinct activity context (max 20) and 3 pts per activity in
    the last 30 days (max 30).
    """
    now = _utc_now(now)

    tenure_bonus = min(_tenure_months(data, now) * 2, 20)
    volume_score = min(len(data.activities) * 0.5, 30)

    contexts = {activity.context for activity in data.activities}
    diversity_score = min(len(contexts) * 4, 20)

    window_start = now - RECENT_WINDOW
    recent = sum(
        1
        for activity in data.activities
        if activity.created_at is not None and activity.created_at >= window_start
    )
    recent_score = min(recent * 3, 30)

    return _clamp(tenure_bonus + volume_score + diversity_score + recent_score)


def blend_scores(
    payment: float,
    collaboration: float,
    engagement: float,
    activity: float,
    weights: Optional[RatingWeights] = None,
) -> int:
    """Weighted sum of the four sub-scores, rounded half up."""
    weights = weights or DEFAULT_WEIGHTS
    if not weights_sum_to_one(weights):
        logger.warning("Rating weights do not sum to 1.0", extra={"total": weights.total})

    composite = (
        payment * weights.payment
        + collaboration * weights.collaboration
        + engagement * weights.engagement
        + activity * weights.activity
    )
    return round_score(composite)


def calculate_composite_rating(
    data: CustomerRatingData,
    weights: Optional[RatingWeights] = None,
    now: Optional[datetime] = None,
) -> int:
    """Blend all four calculators into one 0-100 rating."""
    now = _utc_now(now)
    return blend_scores(
        payment=calculate_payment_reliability_score(data, now=now),
        collaboration=calculate_project_collaboration_score(data),
        engagement=calculate_email_engagement_rate(data),
        activity=calculate_activity_longevity_score(data, now=now),
        weights=weights,
    )


def get_rating_category(score: float) -> RatingCategory:
    """Map a score to its display bucket."""
    for threshold, category in RATING_CATEGORIES:
        if score >= threshold:
            return category
    return POOR_CATEGORY


def build_rating_breakdown(
    data: CustomerRatingData,
    weights: Optional[RatingWeights] = None,
    now: Optional[datetime] = None,
) -> RatingBreakdown:
    """Run every calculator once and bundle the results."""
    now = _utc_now(now)
    weights = weights or DEFAULT_WEIGHTS

    payment = calculate_payment_reliability_score(data, now=now)
    collaboration = calculate_project_collaboration_score(data)
    engagement = calculate_email_engagement_rate(data)
    activity = calculate_activity_longevity_score(data, now=now)
    composite = blend_scores(payment, collaboration, engagement, activity, weights=weights)

    return RatingBreakdown(
        customer_id=data.customer_id,
        payment_reliability=payment,
        project_collaboration=collaboration,
        email_engagement=engagement,
        activity_longevity=activity,
        composite=composite,
        category=get_rating_category(composite),
        weights=weights,
        computed_at=now,
    )
