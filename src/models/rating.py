"""Pydantic models for customer rating inputs and outputs.

Every snapshot model is frozen: the calculators only read them. Field aliases
match the column names used by the storage layer (``dueDate``, ``paidOn``,
``customerCreatedAt`` ...) so database rows can be validated as-is.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so comparisons never mix naive/aware."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _Snapshot(BaseModel):
    """Read-only record supplied by the caller."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ActivityContext(str, Enum):
    """Business objects an activity can refer to."""

    INVOICE = "invoice"
    PROJECT = "project"
    RECEIPT = "receipt"
    FEEDBACK = "feedback"
    AGREEMENT = "agreement"


class ActivityType(str, Enum):
    """Known activity types, named ``{context}_{action}``."""

    INVOICE_SENT = "invoice_sent"
    INVOICE_PAID = "invoice_paid"
    INVOICE_VIEWED = "invoice_viewed"
    INVOICE_OVERDUE = "invoice_overdue"
    INVOICE_LINK_CLICKED = "invoice_link_clicked"
    RECEIPT_SENT = "receipt_sent"
    RECEIPT_LINK_CLICKED = "receipt_link_clicked"
    RECEIPT_VIEWED = "receipt_viewed"
    PROJECT_STARTED = "project_started"
    PROJECT_COMPLETED = "project_completed"
    PROJECT_LINK_CLICKED = "project_link_clicked"
    PROJECT_SENT = "project_sent"
    PROJECT_VIEWED = "project_viewed"
    AGREEMENT_SENT = "agreement_sent"
    AGREEMENT_SIGNED = "agreement_signed"
    AGREEMENT_VIEWED = "agreement_viewed"
    AGREEMENT_LINK_CLICKED = "agreement_link_clicked"
    FEEDBACK_REQUESTED = "feedback_requested"
    FEEDBACK_RECEIVED = "feedback_received"
    FEEDBACK_VIEWED = "feedback_viewed"
    FEEDBACK_LINK_CLICKED = "feedback_link_clicked"
    EMAIL_OPENED = "email_opened"


ACTIVITY_TYPE_DELIMITER = "_"


class CustomerActivity(_Snapshot):
    """One logged event tied to a customer.

    ``type`` stays a plain string: unknown types still count towards
    activity volume and diversity.
    """

    type: str
    created_at: Optional[datetime] = None
    details: Any = None
    reference_type: Optional[str] = Field(default=None, alias="referenceType")
    reference_id: Optional[str] = Field(default=None, alias="referenceId")

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("activity type must be provided")
        return cleaned

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @property
    def context(self) -> str:
        """Prefix of ``type`` before the first delimiter."""
        return self.type.split(ACTIVITY_TYPE_DELIMITER, 1)[0]


class Invoice(_Snapshot):
    """A billing document."""

    id: str
    status: Optional[str] = None
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    created_at: Optional[datetime] = None
    total_amount: float = Field(default=0.0, alias="totalAmount")
    paid_on: Optional[datetime] = Field(default=None, alias="paidOn")

    @field_validator("due_date", "created_at", "paid_on")
    @classmethod
    def normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @field_validator("total_amount", mode="before")
    @classmethod
    def default_amount(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @property
    def is_paid(self) -> bool:
        return self.status == "paid" or self.paid_on is not None


class Receipt(_Snapshot):
    """Confirmation of payment."""

    id: str
    status: Optional[str] = None
    payment_confirmed_at: Optional[datetime] = Field(default=None, alias="paymentConfirmedat")

    @field_validator("payment_confirmed_at")
    @classmethod
    def normalize_confirmed_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class Project(_Snapshot):
    id: str
    status: Optional[str] = None
    signed_status: Optional[str] = Field(default=None, alias="signedStatus")
    has_agreed_to_terms: Optional[bool] = Field(default=None, alias="hasAgreedToTerms")


class ServiceAgreement(_Snapshot):
    id: str
    state: Optional[str] = None
    filled_on: Optional[datetime] = Field(default=None, alias="filledOn")

    @field_validator("filled_on")
    @classmethod
    def normalize_filled_on(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class Feedback(_Snapshot):
    id: str
    state: Optional[str] = None
    filled_on: Optional[datetime] = Field(default=None, alias="filledOn")

    @field_validator("filled_on")
    @classmethod
    def normalize_filled_on(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class CustomerRatingData(_Snapshot):
    """Everything the calculators need about one customer."""

    customer_id: str = Field(alias="customerId")
    activities: List[CustomerActivity] = Field(default_factory=list)
    invoices: List[Invoice] = Field(default_factory=list)
    receipts: List[Receipt] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    service_agreements: List[ServiceAgreement] = Field(
        default_factory=list, alias="serviceAgreements"
    )
    feedbacks: List[Feedback] = Field(default_factory=list)
    customer_created_at: datetime = Field(alias="customerCreatedAt")

    @field_validator("customer_created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def count_activities(self, activity_type: str) -> int:
        """Number of activities whose type equals ``activity_type``."""
        return sum(1 for activity in self.activities if activity.type == activity_type)


class RatingWeights(_Snapshot):
    """Blend weights for the composite rating. Expected to sum to 1.0."""

    payment: float = 0.4
    collaboration: float = 0.25
    engagement: float = 0.2
    activity: float = 0.15

    @property
    def total(self) -> float:
        return self.payment + self.collaboration + self.engagement + self.activity


class RatingCategory(_Snapshot):
    """Display bucket for a score."""

    category: str
    color: str
    description: str
    range: str


class RatingBreakdown(BaseModel):
    """All sub-scores for one customer plus the blended result."""

    customer_id: str
    payment_reliability: float = Field(ge=0, le=100)
    project_collaboration: float = Field(ge=0, le=100)
    email_engagement: float = Field(ge=0, le=100)
    activity_longevity: float = Field(ge=0, le=100)
    composite: int
    category: RatingCategory
    weights: RatingWeights
    computed_at: datetime
