"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .catalog_client import CatalogClient, CatalogFetchError
from .payment_client import PaymentVerificationClient, PaymentServiceError
from .redis_client import connect_redis, close_redis

__all__ = [
    'CatalogClient', 'CatalogFetchError',
    'PaymentVerificationClient', 'PaymentServiceError',
    'connect_redis', 'close_redis',
]
