"""
Customer Rating Service.

Loads a customer's activity log, invoices, receipts, projects, service
agreements and feedback from PostgreSQL, builds the rating snapshot and runs
the calculators. Ratings shown in lists are best-effort: any failure is
logged and reported as the configured fallback score.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import boto3
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.pool import QueuePool

from config.settings import RatingSettings
from models.rating import (
    CustomerActivity,
    CustomerRatingData,
    Feedback,
    Invoice,
    Project,
    RatingBreakdown,
    Receipt,
    ServiceAgreement,
)
from repositories.postgres_repo import PostgresRepository
from services.customer_rating import (
    build_rating_breakdown,
    calculate_payment_reliability_score,
    round_score,
)
from utils.cache_service import LRUCache
from utils.error_handling import (
    CustomerNotFoundError,
    InvalidRatingDataError,
    RatingUnavailableError,
    to_error_payload,
)
from utils.logging_config import get_logger
from utils.validators import ensure_present

logger = get_logger(__name__)

# Shared across service instances in the same process.
_engine = None

CUSTOMER_QUERY = """
    SELECT CAST(id AS TEXT) AS id, created_at
    FROM customers
    WHERE id = :customer_id
"""

ALL_CUSTOMERS_QUERY = """
    SELECT CAST(id AS TEXT) AS id FROM customers ORDER BY created_at
"""

ACTIVITIES_QUERY = """
    SELECT type, created_at, details, "referenceType", "referenceId"
    FROM customer_activities
    WHERE "customerId" = :customer_id
"""

INVOICES_QUERY = """
    SELECT CAST(id AS TEXT) AS id, status, "dueDate", created_at, "totalAmount", "paidOn"
    FROM invoices
    WHERE "customerId" = :customer_id
"""

RECEIPTS_QUERY = """
    SELECT CAST(id AS TEXT) AS id, status, "paymentConfirmedat"
    FROM receipts
    WHERE "customerId" = :customer_id
"""

PROJECTS_QUERY = """
    SELECT CAST(id AS TEXT) AS id, status, "signedStatus", "hasAgreedToTerms"
    FROM projects
    WHERE "customerId" = :customer_id
"""

SERVICE_AGREEMENTS_QUERY = """
    SELECT CAST(id AS TEXT) AS id, state, "filledOn"
    FROM service_agreements
    WHERE "customerId" = :customer_id
"""

FEEDBACKS_QUERY = """
    SELECT CAST(id AS TEXT) AS id, state, "filledOn"
    FROM feedbacks
    WHERE "customerId" = :customer_id
"""


def get_db_engine():
    """Get or create SQLAlchemy engine with connection pooling."""
    global _engine
    if _engine is None:
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            secret_arn = os.environ.get("DB_SECRET_ARN")
            if secret_arn:
                db_url = _secret_to_db_url(secret_arn)
            if not db_url:
                logger.warning("DATABASE_URL not set; ratings will use the fallback score")
                return None
        _engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=2,
            max_overflow=3,
            pool_pre_ping=True,
            pool_recycle=300,
        )
    return _engine


def _secret_to_db_url(secret_arn: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS-style secret."""
    try:
        sm = boto3.client("secretsmanager")
        secret = json.loads(sm.get_secret_value(SecretId=secret_arn)["SecretString"])
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        return None

    host = secret.get("host")
    port = secret.get("port", 5432)
    username = secret.get("username")
    password = secret.get("password")
    dbname = secret.get("dbname", "postgres")
    if not (host and username and password):
        return None
    return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"


class RatingService:
    """Assembles rating snapshots and scores customers."""

    def __init__(
        self,
        repository: Optional[PostgresRepository] = None,
        settings: Optional[RatingSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or RatingSettings.from_environment()
        if repository is None:
            engine = get_db_engine()
            repository = PostgresRepository(engine) if engine is not None else None
        self.repository = repository
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.cache = LRUCache(
            max_size=self.settings.cache_max_size,
            ttl_seconds=self.settings.cache_ttl_seconds,
        )

    def _require_repository(self) -> PostgresRepository:
        if self.repository is None:
            raise RatingUnavailableError()
        return self.repository

    def assemble_rating_data(self, customer_id: str) -> CustomerRatingData:
        """Load every record the calculators need for one customer."""
        ensure_present(customer_id, "customer_id")
        repo = self._require_repository()
        params = {"customer_id": customer_id}

        customer = repo.fetch_one(CUSTOMER_QUERY, params)
        if not customer:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")

        try:
            return CustomerRatingData(
                customer_id=customer_id,
                activities=self._load(CustomerActivity, ACTIVITIES_QUERY, params),
                invoices=self._load(Invoice, INVOICES_QUERY, params),
                receipts=self._load(Receipt, RECEIPTS_QUERY, params),
                projects=self._load(Project, PROJECTS_QUERY, params),
                service_agreements=self._load(ServiceAgreement, SERVICE_AGREEMENTS_QUERY, params),
                feedbacks=self._load(Feedback, FEEDBACKS_QUERY, params),
                customer_created_at=customer.get("created_at") or self.clock(),
            )
        except ValidationError as exc:
            raise InvalidRatingDataError(
                f"Customer {customer_id} has invalid rating data: {exc.error_count()} error(s)"
            ) from exc

    def _load(self, model, query: str, params: dict) -> List:
        rows = self.repository.fetch_all(query, params)
        return [model.model_validate(row) for row in rows]

    def calculate_customer_rating(self, customer_id: str) -> int:
        """
        Rating shown for a customer: payment reliability rounded half up.

        Any failure is logged and reported as the fallback score, which is
        never cached.
        """
        cache_key = f"rating:{customer_id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Rating cache hit", extra={"customer_id": customer_id})
            return cached

        try:
            data = self.assemble_rating_data(customer_id)
            rating = round_score(calculate_payment_reliability_score(data, now=self.clock()))
        except Exception as exc:
            logger.error(
                "Failed to calculate customer rating",
                extra={"customer_id": customer_id, "error": to_error_payload(exc)},
            )
            return self.settings.fallback_score

        self.cache.set(cache_key, rating)
        logger.info(
            "Customer rating calculated",
            extra={"customer_id": customer_id, "rating": rating},
        )
        return rating

    def get_rating_breakdown(self, customer_id: str) -> RatingBreakdown:
        """Every sub-score and the weighted composite. Errors propagate."""
        data = self.assemble_rating_data(customer_id)
        return build_rating_breakdown(data, weights=self.settings.weights, now=self.clock())

    def calculate_all_customer_ratings(self) -> Dict[str, int]:
        """Rate every customer; an empty dict when customers cannot be listed."""
        try:
            rows = self._require_repository().fetch_all(ALL_CUSTOMERS_QUERY)
        except Exception as exc:
            logger.error("Failed to list customers", extra={"error": to_error_payload(exc)})
            return {}

        # calculate_customer_rating falls back per customer, so one bad row
        # never aborts the batch.
        ratings = {row["id"]: self.calculate_customer_rating(row["id"]) for row in rows}
        logger.info("Customer ratings calculated", extra={"count": len(ratings)})
        return ratings

    def invalidate(self, customer_id: str) -> bool:
        """Drop a cached rating so the next read recalculates it."""
        return self.cache.delete(f"rating:{customer_id}")
