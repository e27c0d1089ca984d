from __future__ import annotations

import pytest

from ocrbase.jobs.models import ALLOWED_TRANSITIONS, JOB_STATUSES, TERMINAL_STATUSES, JobTransitionError, validate_transition


@pytest.mark.parametrize(
  ("current", "target"),
  [
    ("pending", "processing"),
    ("processing", "extracting"),
    ("processing", "completed"),
    ("extracting", "completed"),
    ("extracting", "failed"),
    ("failed", "processing"),
    ("completed", "completed"),
  ],
)
def test_allowed_transitions(current: str, target: str) -> None:
  validate_transition("job_1", current, target)


@pytest.mark.parametrize(("current", "target"), [("completed", "processing"), ("completed", "failed"), ("pending", "completed"), ("pending", "extracting"), ("extracting", "processing"), ("processing", "pending")])
def test_rejected_transitions(current: str, target: str) -> None:
  with pytest.raises(JobTransitionError) as exc:
    validate_transition("job_1", current, target)

  assert exc.value.current == current
  assert exc.value.target == target


def test_no_status_can_return_to_pending() -> None:
  assert all("pending" not in targets for targets in ALLOWED_TRANSITIONS.values())


def test_every_status_has_a_transition_row() -> None:
  assert set(ALLOWED_TRANSITIONS) == set(JOB_STATUSES)
  assert TERMINAL_STATUSES == {"completed", "failed"}


@pytest.mark.parametrize("target", ["processing", "failed", "completed"])
def test_final_failure_allows_nothing(target: str) -> None:
  with pytest.raises(JobTransitionError):
    validate_transition("job_1", "failed", target, retryable=False)


def test_retryable_flag_only_guards_failed_jobs() -> None:
  validate_transition("job_1", "processing", "extracting", retryable=False)
  validate_transition("job_1", "failed", "processing", retryable=True)
