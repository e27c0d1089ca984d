from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from ocrbase.api.deps import get_current_identity, get_job_service
from ocrbase.api.models import JobResponse
from ocrbase.core.security import Identity
from ocrbase.services.jobs import JobService

router = APIRouter()


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, identity: Annotated[Identity, Depends(get_current_identity)], job_service: Annotated[JobService, Depends(get_job_service)]) -> JobResponse:
  """Return one job owned by the caller's organization."""
  job = await job_service.get_job_for_organization(job_id, identity.organization_id)
  if job is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
  return JobResponse.from_record(job)
