"""Per-connection bridge from the notification bus to a websocket peer."""

from __future__ import annotations

import asyncio
import contextlib
import logging

import msgspec
from starlette import status
from starlette.websockets import WebSocket, WebSocketDisconnect

from ocrbase.core.security import Identity, IdentityResolver
from ocrbase.realtime.bus import NotificationBus
from ocrbase.realtime.messages import JOB_NOT_FOUND, UNAUTHORIZED, ConnectionErrorMessage, JobUpdateMessage, PongMessage, build_status_message, encode_message, parse_client_message
from ocrbase.services.jobs import JobService

logger = logging.getLogger(__name__)


class JobUpdatesSession:
  """Serve one websocket connection watching one job.

  The session owns exactly one bus subscription, created after the caller is
  authorized for the job and removed in ``finally`` however the connection ends.
  All frames go out through a single relay task fed by a queue, so bus
  callbacks never touch the socket directly.
  """

  def __init__(self, websocket: WebSocket, *, job_id: str, bus: NotificationBus, resolver: IdentityResolver, job_service: JobService) -> None:
    self._websocket = websocket
    self._job_id = job_id
    self._bus = bus
    self._resolver = resolver
    self._job_service = job_service
    self._queue: asyncio.Queue[msgspec.Struct] = asyncio.Queue()

  async def run(self) -> None:
    await self._websocket.accept()

    job = None
    try:
      identity = await self._authenticate()
      if identity is not None:
        # Scoped by organization: a foreign job is indistinguishable from a missing one.
        job = await self._job_service.get_job_for_organization(self._job_id, identity.organization_id)
    except Exception:  # noqa: BLE001
      # Storage faults end the connection with 1011 rather than an unhandled error.
      logger.error("Job updates connection for job %s failed during setup", self._job_id, exc_info=True)
      await self._websocket.close(code=status.WS_1011_INTERNAL_ERROR)
      return

    if identity is None:
      logger.warning("Rejected job updates connection for job %s: unauthorized", self._job_id)
      await self._reject(UNAUTHORIZED)
      return

    if job is None:
      logger.warning("Rejected job updates connection for job %s: not found for organization %s", self._job_id, identity.organization_id)
      await self._reject(JOB_NOT_FOUND)
      return

    loop = asyncio.get_running_loop()

    def on_update(message: JobUpdateMessage) -> None:
      loop.call_soon_threadsafe(self._queue.put_nowait, message)

    self._bus.subscribe(self._job_id, on_update)
    relay: asyncio.Task[None] | None = None
    logger.info("Job updates connection opened for job %s", self._job_id)
    try:
      # Current status goes first so a late subscriber still sees the latest state.
      self._queue.put_nowait(build_status_message(self._job_id, job.status))
      relay = asyncio.create_task(self._relay())
      await self._receive_until_disconnect()
    finally:
      self._bus.unsubscribe(self._job_id, on_update)
      if relay is not None:
        relay.cancel()
        with contextlib.suppress(asyncio.CancelledError):
          await relay
      logger.info("Job updates connection closed for job %s", self._job_id)

  async def _authenticate(self) -> Identity | None:
    # Watching a job is not a billable request, so key usage counters stay untouched.
    return await self._resolver.resolve(authorization=self._websocket.headers.get("authorization"), cookies=self._websocket.cookies, update_usage=False)

  async def _reject(self, reason: str) -> None:
    await self._websocket.send_text(encode_message(ConnectionErrorMessage(error=reason)))
    await self._websocket.close()

  async def _relay(self) -> None:
    while True:
      message = await self._queue.get()
      try:
        await self._websocket.send_text(encode_message(message))
      except (WebSocketDisconnect, RuntimeError):
        # Peer went away mid-send; the receive loop observes the disconnect.
        logger.debug("Stopped relaying updates for job %s", self._job_id)
        return

  async def _receive_until_disconnect(self) -> None:
    while True:
      frame = await self._websocket.receive()
      if frame["type"] == "websocket.disconnect":
        return
      payload = frame.get("text") or frame.get("bytes")
      if payload is None:
        continue
      # Only pings are answered; any other payload is ignored.
      if parse_client_message(payload) is not None:
        self._queue.put_nowait(PongMessage())
