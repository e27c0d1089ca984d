"""Internal callbacks that let out-of-process workers drive job state."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from ocrbase.api.deps import get_job_service, require_worker_secret
from ocrbase.api.models import AcceptedResponse, CompleteJobRequest, FailJobRequest, FileInfoRequest, StatusUpdateRequest
from ocrbase.services.jobs import JobService

router = APIRouter(prefix="/jobs", dependencies=[Depends(require_worker_secret)])
logger = logging.getLogger(__name__)


@router.post("/{job_id}/status", response_model=AcceptedResponse)
async def report_status(job_id: str, payload: StatusUpdateRequest, job_service: Annotated[JobService, Depends(get_job_service)]) -> AcceptedResponse:
  await job_service.update_status(job_id, payload.status, payload.to_update())
  return AcceptedResponse()


@router.post("/{job_id}/complete", response_model=AcceptedResponse)
async def report_completion(job_id: str, payload: CompleteJobRequest, job_service: Annotated[JobService, Depends(get_job_service)]) -> AcceptedResponse:
  await job_service.complete_job(job_id, payload.to_result())
  return AcceptedResponse()


@router.post("/{job_id}/fail", response_model=AcceptedResponse)
async def report_failure(job_id: str, payload: FailJobRequest, job_service: Annotated[JobService, Depends(get_job_service)]) -> AcceptedResponse:
  await job_service.fail_job(job_id, payload.error_code, payload.error_message, should_retry=payload.should_retry)
  return AcceptedResponse()


@router.post("/{job_id}/file", response_model=AcceptedResponse)
async def report_file_info(job_id: str, payload: FileInfoRequest, job_service: Annotated[JobService, Depends(get_job_service)]) -> AcceptedResponse:
  logger.debug("Worker reported file info for job %s", job_id)
  await job_service.update_file_info(job_id, payload.to_file_info())
  return AcceptedResponse()
