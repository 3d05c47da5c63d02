from fastapi import APIRouter, Depends, HTTPException, status

from redirect_categories.core.config import Settings, get_settings
from redirect_categories.core.security import get_machine_principal, require_scopes
from redirect_categories.schemas.jobs import ClaimRequest, JobOut, ReapResult, ResultRequest
from redirect_categories.services.store import StoreConflictError, StoreNotFoundError, get_store

router = APIRouter()


@router.get("", response_model=list[JobOut])
async def get_jobs(principal=Depends(get_machine_principal), store=Depends(get_store), limit: int = 20) -> list[JobOut]:
    require_scopes(principal, {"jobs:read"})
    return [JobOut(**job) for job in store.list_queued_jobs(limit)]


@router.post("/reap-expired", response_model=ReapResult)
async def reap_expired_jobs(
    principal=Depends(get_machine_principal),
    store=Depends(get_store),
    limit: int = 100,
) -> ReapResult:
    require_scopes(principal, {"jobs:write"})
    return ReapResult(requeued=store.requeue_expired_jobs(limit=limit))


@router.get("/{job_id}", response_model=JobOut)
async def get_job(job_id: str, principal=Depends(get_machine_principal), store=Depends(get_store)) -> JobOut:
    require_scopes(principal, {"jobs:read"})
    try:
        return JobOut(**store.get_job(job_id))
    except StoreNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/{job_id}/claim", response_model=JobOut)
async def claim_job(
    job_id: str,
    payload: ClaimRequest,
    principal=Depends(get_machine_principal),
    store=Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> JobOut:
    require_scopes(principal, {"jobs:write"})
    try:
        job = store.claim_job(
            job_id,
            module_id=principal.subject,
            lease_seconds=payload.lease_seconds or settings.job_claim_lease_seconds,
        )
    except StoreNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return JobOut(**job)


@router.post("/{job_id}/result", response_model=JobOut)
async def submit_job_result(
    job_id: str,
    payload: ResultRequest,
    principal=Depends(get_machine_principal),
    store=Depends(get_store),
) -> JobOut:
    require_scopes(principal, {"jobs:write"})
    try:
        job = store.submit_result(
            job_id,
            module_id=principal.subject,
            status=payload.status,
            result_json=payload.result_json,
            error_json=payload.error_json,
        )
    except StoreNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return JobOut(**job)
