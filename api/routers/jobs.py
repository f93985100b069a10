"""
Mail job endpoints.

POST /jobs/                    → Enqueue a job (payload validated against its type)
GET  /jobs/                    → List jobs with filtering + pagination
GET  /jobs/stats               → Counts per status
GET  /jobs/{job_id}            → Get a single job by ID
POST /jobs/{job_id}/requeue    → Enqueue a FAILED job's work again as a new job

The API layer is intentionally thin:
- Validate input (Pydantic does this automatically)
- Writes go through the Job Store / Idempotency Guard
- Reads go straight to the database

It does NOT send mail — that happens in a dispatch cycle (the worker, or
POST /dispatch/run). A 201 here means "queued", nothing more.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from api.dependencies import get_db, get_services
from api.schemas.job import JobCreate, JobResponse, JobListResponse, JobStats, RequeueRequest
from dispatch.errors import DuplicateJobError, InvalidPayloadError, JobStateError, RecordNotFoundError
from dispatch.factory import MailQueueServices
from jobs.payloads import parse_payload
from models.job import MailJob
from models.enums import JobStatus, JobType

router = APIRouter(prefix="/jobs", tags=["jobs"])


async def _load(db: AsyncSession, job_id: int) -> MailJob:
    job = await db.get(MailJob, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job


@router.post("/", response_model=JobResponse, status_code=201)
async def create_job(
    job_in: JobCreate,
    db: AsyncSession = Depends(get_db),
    services: MailQueueServices = Depends(get_services),
) -> JobResponse:
    """
    Enqueue a new job with status=QUEUED.

    The payload must match the job type (422 otherwise). A MONTHLY_SUMMARY for
    a period that is already queued, in progress or sent is refused with 409.
    """
    try:
        payload = parse_payload(job_in.type, job_in.payload)
    except InvalidPayloadError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        job_id = await run_in_threadpool(
            services.guard.enqueue_recurring,
            job_in.type,
            payload.to_json(),
            job_in.priority,
            job_in.send_at,
            job_in.created_by,
        )
    except DuplicateJobError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return JobResponse.model_validate(await _load(db, job_id))


@router.get("/", response_model=JobListResponse)
async def list_jobs(
    status: Optional[JobStatus] = Query(None, description="Filter by job status"),
    job_type: Optional[JobType] = Query(None, alias="type", description="Filter by job type"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Jobs per page"),
    db: AsyncSession = Depends(get_db),
) -> JobListResponse:
    """
    List jobs, newest first, with optional filtering and pagination.

    Two queries: the total count of matching rows, then one page of them.
    """
    conditions = []
    if status:
        conditions.append(MailJob.status == status.value)
    if job_type:
        conditions.append(MailJob.type == job_type.value)

    # Query 1: total count
    count_query = select(func.count(MailJob.id)).where(*conditions)
    total = (await db.execute(count_query)).scalar() or 0

    # Query 2: fetch page
    offset = (page - 1) * page_size
    query = (
        select(MailJob)
        .where(*conditions)
        .order_by(MailJob.id.desc())
        .offset(offset)
        .limit(page_size)
    )
    result = await db.execute(query)
    jobs = result.scalars().all()

    return JobListResponse(
        jobs=[JobResponse.model_validate(j) for j in jobs],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/stats", response_model=JobStats)
async def get_job_stats(
    db: AsyncSession = Depends(get_db),
) -> JobStats:
    """Counts per status in a single query using conditional aggregation (COUNT + FILTER)."""
    query = select(
        func.count(MailJob.id).label("total"),
        func.count(MailJob.id).filter(MailJob.status == JobStatus.QUEUED.value).label("queued"),
        func.count(MailJob.id).filter(MailJob.status == JobStatus.PROCESSING.value).label("processing"),
        func.count(MailJob.id).filter(MailJob.status == JobStatus.SENT.value).label("sent"),
        func.count(MailJob.id).filter(MailJob.status == JobStatus.FAILED.value).label("failed"),
    )
    row = (await db.execute(query)).one()

    return JobStats(
        total_jobs=row.total,
        queued=row.queued,
        processing=row.processing,
        sent=row.sent,
        failed=row.failed,
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Get a single job by its id. The error field says why a FAILED job failed."""
    return JobResponse.model_validate(await _load(db, job_id))


@router.post("/{job_id}/requeue", response_model=JobResponse, status_code=201)
async def requeue_job(
    job_id: int,
    body: Optional[RequeueRequest] = None,
    db: AsyncSession = Depends(get_db),
    services: MailQueueServices = Depends(get_services),
) -> JobResponse:
    """
    Enqueue the work of a FAILED job again.

    The FAILED row stays as it is (history); a new QUEUED job with the same
    type, payload and priority is created and returned. Only FAILED jobs can be
    requeued, and a recurring job only while its period is free.
    """
    created_by = body.created_by if body else "api"
    try:
        new_id = await run_in_threadpool(services.guard.requeue_failed, job_id, created_by)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (JobStateError, DuplicateJobError) as e:
        raise HTTPException(status_code=409, detail=str(e))

    return JobResponse.model_validate(await _load(db, new_id))
