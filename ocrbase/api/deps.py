"""Shared FastAPI dependencies for the job service, identity and worker auth."""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from starlette.requests import HTTPConnection

from ocrbase.config import Settings, get_settings
from ocrbase.core.security import Identity, IdentityResolver
from ocrbase.realtime.bus import NotificationBus
from ocrbase.services.jobs import JobService

logger = logging.getLogger(__name__)


# HTTPConnection so the same providers serve both HTTP and websocket routes.
def get_job_service(connection: HTTPConnection) -> JobService:
  job_service = getattr(connection.app.state, "job_service", None)
  if job_service is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Job store is not configured.")
  return job_service


def get_notification_bus(connection: HTTPConnection) -> NotificationBus:
  return connection.app.state.notification_bus


def get_identity_resolver(connection: HTTPConnection) -> IdentityResolver:
  resolver = getattr(connection.app.state, "identity_resolver", None)
  if resolver is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Identity resolution is not configured.")
  return resolver


def require_worker_secret(settings: Annotated[Settings, Depends(get_settings)], x_ocrbase_worker_secret: Annotated[str | None, Header()] = None) -> None:
  """Reject worker callbacks that do not carry the shared secret."""
  # Secure-by-default: without a configured secret the internal routes are closed.
  if not settings.worker_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Worker authentication is not configured.")
  if not secrets.compare_digest(x_ocrbase_worker_secret or "", settings.worker_secret):
    logger.warning("Rejected worker callback with an invalid secret")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid worker secret.")


async def get_current_identity(connection: HTTPConnection, resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)]) -> Identity:
  """Resolve the HTTP caller or fail with 401; each call counts as API key usage."""
  identity = await resolver.resolve(authorization=connection.headers.get("authorization"), cookies=connection.cookies, update_usage=True)
  if identity is None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized", headers={"WWW-Authenticate": "Bearer"})
  return identity
