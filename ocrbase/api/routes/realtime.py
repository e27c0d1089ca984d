from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket

from ocrbase.api.deps import get_identity_resolver, get_job_service, get_notification_bus
from ocrbase.core.security import IdentityResolver
from ocrbase.realtime.bus import NotificationBus
from ocrbase.realtime.gateway import JobUpdatesSession
from ocrbase.services.jobs import JobService

router = APIRouter()


@router.websocket("/jobs/{job_id}")
async def job_updates(
  websocket: WebSocket,
  job_id: str,
  bus: Annotated[NotificationBus, Depends(get_notification_bus)],
  resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
  job_service: Annotated[JobService, Depends(get_job_service)],
) -> None:
  """Stream status, completion and error updates for one job."""
  session = JobUpdatesSession(websocket, job_id=job_id, bus=bus, resolver=resolver, job_service=job_service)
  await session.run()
