"""Rating calculators and the service that feeds them.

``services.customer_rating`` is pure and safe to import anywhere;
``services.rating_service`` pulls in SQLAlchemy and boto3, so import it
only where storage access is needed.
"""
