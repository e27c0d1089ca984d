"""ORM table definitions."""

from .auth import ApiKey, AuthSession
from .jobs import ExtractionSchema, Job
from .usage import ApiKeyUsageDaily, UsageEvent

__all__ = ["ApiKey", "ApiKeyUsageDaily", "AuthSession", "ExtractionSchema", "Job", "UsageEvent"]
