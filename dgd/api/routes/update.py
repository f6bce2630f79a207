"""Self-update API – check for a newer build and apply it.

Applying runs in the background; the process restarts itself when done, so
the client only gets an acknowledgement.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from dgd.updater import ReleaseRecord, UpdateError, UpdateInProgressError, UpdateService

router = APIRouter()


# ── schemas ──────────────────────────────────────────────────────────────


class UpdateCheckResponse(BaseModel):
    update_available: bool
    current_version: str
    latest_version: str | None = None
    download_url: str | None = None
    checksum: str | None = None


class UpdateApplyRequest(BaseModel):
    version: str
    url: str
    checksum: str


class UpdateApplyResponse(BaseModel):
    success: bool
    message: str


# ── deps ─────────────────────────────────────────────────────────────────


def get_update_service(request: Request) -> UpdateService:
    return request.app.state.update_service


ServiceDep = Annotated[UpdateService, Depends(get_update_service)]


# ── routes ───────────────────────────────────────────────────────────────


@router.get("/check", response_model=UpdateCheckResponse, response_model_exclude_none=True)
async def check_update(svc: ServiceDep) -> UpdateCheckResponse:
    try:
        record = await svc.check()
    except UpdateError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    if record is None:
        return UpdateCheckResponse(update_available=False, current_version=svc.current_version)
    return UpdateCheckResponse(
        update_available=True,
        current_version=svc.current_version,
        latest_version=record.version,
        download_url=record.download_url,
        checksum=record.checksum or None,
    )


@router.post("/apply", response_model=UpdateApplyResponse, status_code=status.HTTP_202_ACCEPTED)
async def apply_update(body: UpdateApplyRequest, svc: ServiceDep) -> UpdateApplyResponse:
    if not (body.version and body.url and body.checksum):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="version, url, and checksum are required",
        )

    record = ReleaseRecord(version=body.version, download_url=body.url, checksum=body.checksum)
    try:
        svc.apply(record)
    except UpdateInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return UpdateApplyResponse(
        success=True,
        message="Update is being applied. Application will restart shortly.",
    )
