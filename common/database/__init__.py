"""
Database module - Async MongoDB connectivity and store retry policy.

Usage:
    from common.database import MongoDB, retry_transient

    mongo = MongoDB()
    await mongo.connect(uri, database_name)
    service = SomeService(mongo.db)
"""

from common.database.mongodb import MongoDB
from common.database.retry import (
    TRANSIENT_STORE_ERRORS,
    retry_transient,
    transient_retry_policy,
)

__all__ = [
    "MongoDB",
    "TRANSIENT_STORE_ERRORS",
    "retry_transient",
    "transient_retry_policy",
]
