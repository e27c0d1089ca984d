"""In-process publish/subscribe registry for job update messages."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from ocrbase.realtime.messages import JobUpdateMessage

logger = logging.getLogger(__name__)

JobUpdateCallback = Callable[[JobUpdateMessage], None]


class JobEventPublisher(Protocol):
  """What the job store needs from a notification backend."""

  def publish(self, job_id: str, message: JobUpdateMessage) -> int:
    """Deliver a message to current listeners and return how many were reached."""


class NotificationBus(JobEventPublisher):
  """Fan out job updates to callbacks subscribed in this process.

  Callbacks run synchronously inside publish, in publish order, so each
  subscriber sees one job's messages in the order the job store committed
  them. Callbacks must not block; the gateway callback only enqueues.
  """

  def __init__(self) -> None:
    self._subscribers: dict[str, set[JobUpdateCallback]] = {}
    self._lock = threading.Lock()

  def subscribe(self, job_id: str, callback: JobUpdateCallback) -> None:
    with self._lock:
      callbacks = self._subscribers.setdefault(job_id, set())
      callbacks.add(callback)
      count = len(callbacks)
    logger.debug("Subscribed to job %s (%s live)", job_id, count)

  def unsubscribe(self, job_id: str, callback: JobUpdateCallback) -> None:
    """Remove a callback; unknown jobs and non-members are ignored."""
    with self._lock:
      callbacks = self._subscribers.get(job_id)
      if callbacks is None:
        return
      callbacks.discard(callback)
      count = len(callbacks)
      # Drop empty sets so connection churn does not grow the registry.
      if not callbacks:
        del self._subscribers[job_id]
    logger.debug("Unsubscribed from job %s (%s live)", job_id, count)

  def publish(self, job_id: str, message: JobUpdateMessage) -> int:
    with self._lock:
      callbacks = list(self._subscribers.get(job_id, ()))
    delivered = 0
    for callback in callbacks:
      try:
        callback(message)
        delivered += 1
      except Exception:  # noqa: BLE001
        logger.warning("Subscriber callback failed for job %s", job_id, exc_info=True)
    return delivered

  def subscriber_count(self, job_id: str) -> int:
    with self._lock:
      return len(self._subscribers.get(job_id, ()))

  def job_ids(self) -> list[str]:
    """Jobs with at least one live subscriber."""
    with self._lock:
      return list(self._subscribers)
