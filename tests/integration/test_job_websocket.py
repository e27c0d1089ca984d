"""End-to-end tests for the job updates websocket."""

from __future__ import annotations

import pytest
from starlette.websockets import WebSocketDisconnect

from ocrbase.api.deps import get_identity_resolver
from ocrbase.main import app

ORG_A_KEY = "sk_orgAkey000000000000000000000000"
ORG_B_KEY = "sk_orgBkey000000000000000000000000"
WORKER_SECRET = "test-worker-secret"

WORKER_HEADERS = {"X-Ocrbase-Worker-Secret": WORKER_SECRET}


def _auth(key: str) -> dict[str, str]:
  return {"Authorization": f"Bearer {key}"}


def test_first_message_is_current_status(client, make_job) -> None:
  make_job("job_abc", status="extracting")

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as ws:
    assert ws.receive_json() == {"type": "status", "jobId": "job_abc", "data": {"status": "extracting"}}


def test_ping_gets_pong_and_garbage_is_ignored(client, make_job) -> None:
  make_job("job_abc")

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as ws:
    ws.receive_json()
    for _ in range(3):
      ws.send_text("not json")
      ws.send_json({"type": "subscribe"})
      ws.send_json({"type": "ping"})
      assert ws.receive_json() == {"type": "pong"}


def test_objects_without_ping_type_get_no_reply(client, make_job) -> None:
  make_job("job_abc", status="processing")

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as ws:
    ws.receive_json()
    ws.send_json({"hello": "world"})
    ws.send_json({})
    ws.send_json(["ping"])
    ws.send_json({"type": "ping"})
    assert ws.receive_json() == {"type": "pong"}

    client.post("/internal/jobs/job_abc/status", json={"status": "extracting"}, headers=WORKER_HEADERS)

    # A reply to any of the earlier frames would arrive before this update.
    assert ws.receive_json() == {"type": "status", "jobId": "job_abc", "data": {"status": "extracting"}}


def test_worker_updates_reach_the_subscriber_in_order(client, make_job, usage_repo) -> None:
  make_job("job_abc", api_key_id="ak_1", status="pending")

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as ws:
    assert ws.receive_json()["data"] == {"status": "pending"}

    response = client.post("/internal/jobs/job_abc/status", json={"status": "processing"}, headers=WORKER_HEADERS)
    assert response.status_code == 200
    assert response.json() == {"status": "accepted"}
    response = client.post("/internal/jobs/job_abc/complete", json={"markdownResult": "# Hi", "pageCount": 2, "tokenCount": 50, "processingTimeMs": 1500, "llmUsage": {"promptTokens": 30, "completionTokens": 20}}, headers=WORKER_HEADERS)
    assert response.status_code == 200

    assert ws.receive_json() == {"type": "status", "jobId": "job_abc", "data": {"status": "processing"}}
    assert ws.receive_json() == {"type": "completed", "jobId": "job_abc", "data": {"status": "completed", "markdownResult": "# Hi", "processingTimeMs": 1500}}

  assert usage_repo.events["job_abc"].pages == 2


def test_terminal_failure_reaches_the_subscriber(client, make_job) -> None:
  make_job("job_abc", status="processing")

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as ws:
    ws.receive_json()
    client.post("/internal/jobs/job_abc/fail", json={"errorCode": "OCR_TIMEOUT", "errorMessage": "retrying", "shouldRetry": True}, headers=WORKER_HEADERS)
    client.post("/internal/jobs/job_abc/fail", json={"errorCode": "OCR_FAILED", "errorMessage": "Unreadable document"}, headers=WORKER_HEADERS)

    # The retryable failure is silent, so the first frame is the terminal error.
    assert ws.receive_json() == {"type": "error", "jobId": "job_abc", "data": {"status": "failed", "error": "Unreadable document"}}


def test_job_of_another_organization_looks_missing(client, make_job, bus) -> None:
  make_job("job_abc", organization_id="org_a")

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_B_KEY)) as ws:
    assert ws.receive_json() == {"type": "error", "error": "Job not found"}
    with pytest.raises(WebSocketDisconnect):
      ws.receive_json()

  assert bus.subscriber_count("job_abc") == 0


def test_missing_job_gets_the_same_answer(client, bus) -> None:
  with client.websocket_connect("/ws/jobs/job_nope", headers=_auth(ORG_A_KEY)) as ws:
    assert ws.receive_json() == {"type": "error", "error": "Job not found"}

  assert bus.job_ids() == []


def test_unauthenticated_connection_is_rejected(client, make_job, bus) -> None:
  make_job("job_abc")

  with client.websocket_connect("/ws/jobs/job_abc") as ws:
    assert ws.receive_json() == {"type": "error", "error": "Unauthorized"}
    with pytest.raises(WebSocketDisconnect):
      ws.receive_json()

  assert bus.subscriber_count("job_abc") == 0


def test_closing_the_connection_removes_the_subscription(client, make_job, bus) -> None:
  make_job("job_abc")

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as first:
    first.receive_json()
    with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as second:
      second.receive_json()
      assert bus.subscriber_count("job_abc") == 2
    assert bus.subscriber_count("job_abc") == 1

  assert bus.subscriber_count("job_abc") == 0
  assert bus.job_ids() == []


def test_websocket_auth_does_not_count_as_api_usage(client, make_job, identity_resolver) -> None:
  make_job("job_abc")

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as ws:
    ws.receive_json()

  assert identity_resolver.update_usage_calls == [False]


class _FailingResolver:
  async def resolve(self, *, authorization, cookies, update_usage=True):
    raise ConnectionError("database unavailable")


def test_storage_fault_during_setup_closes_with_internal_error(client, make_job, bus) -> None:
  make_job("job_abc")
  app.dependency_overrides[get_identity_resolver] = lambda: _FailingResolver()

  with client.websocket_connect("/ws/jobs/job_abc", headers=_auth(ORG_A_KEY)) as ws:
    with pytest.raises(WebSocketDisconnect) as exc:
      ws.receive_json()

  assert exc.value.code == 1011
  assert bus.job_ids() == []
