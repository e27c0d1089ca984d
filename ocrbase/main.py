from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from ocrbase import __version__
from ocrbase.api.routes import jobs, realtime, worker
from ocrbase.config import get_settings
from ocrbase.core.exceptions import global_exception_handler, http_exception_handler, job_not_found_exception_handler, job_transition_exception_handler, request_validation_exception_handler
from ocrbase.core.lifespan import lifespan
from ocrbase.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from ocrbase.jobs.models import JobNotFoundError, JobTransitionError

settings = get_settings()

app = FastAPI(title="ocrbase", version=__version__, lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"])

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(JobNotFoundError, job_not_found_exception_handler)
app.add_exception_handler(JobTransitionError, job_transition_exception_handler)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(jobs.router, prefix="/v1/jobs", tags=["jobs"])
app.include_router(worker.router, prefix="/internal", tags=["worker"])
app.include_router(realtime.router, prefix="/ws", tags=["realtime"])
