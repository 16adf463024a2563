"""
Script review routes - review queue, approve/reject, revisions and versions.
"""

from typing import List

from fastapi import APIRouter, BackgroundTasks

from ..models import (
    GeneratedScript,
    RejectScriptRequest,
    ReviseScriptRequest,
    ReviseScriptResponse,
    ScriptVersion,
)
from ..services.container import get_container
from ..services.use_cases import ScriptReviewUseCase
from .errors import domain_errors

router = APIRouter(prefix="/scripts", tags=["scripts"])


def _review_use_case() -> ScriptReviewUseCase:
    container = get_container()
    return ScriptReviewUseCase(container.scripts, container.learning, container.revisions)


@router.get("/{user_id}", response_model=List[GeneratedScript])
async def list_review_queue(user_id: str):
    """Scripts awaiting review (pending or in revision)"""
    return _review_use_case().list_review_queue(user_id)


@router.get("/detail/{script_id}", response_model=GeneratedScript)
async def get_script(script_id: str):
    with domain_errors():
        return _review_use_case().get_script(script_id)


@router.post("/{script_id}/approve", response_model=GeneratedScript)
async def approve_script(script_id: str):
    with domain_errors():
        return _review_use_case().approve_script(script_id)


@router.post("/{script_id}/reject", response_model=GeneratedScript)
async def reject_script(script_id: str, request: RejectScriptRequest):
    with domain_errors():
        return _review_use_case().reject_script(script_id, request.category, request.reason)


@router.post("/{script_id}/revise", response_model=ReviseScriptResponse)
async def revise_script(script_id: str, request: ReviseScriptRequest, background_tasks: BackgroundTasks):
    """Request a revision; the revision run continues after the response"""
    with domain_errors():
        result = await _review_use_case().request_revision(
            script_id,
            request.feedback,
            request.selected_scene_ids,
            background_tasks=background_tasks,
        )
    return ReviseScriptResponse(
        script_id=result.script_id,
        item_id=result.item_id,
        attempt=result.attempt,
        status=result.status.value,
    )


@router.post("/{script_id}/reset-revision", response_model=GeneratedScript)
async def reset_revision(script_id: str):
    with domain_errors():
        return _review_use_case().reset_revision(script_id)


@router.get("/{script_id}/versions", response_model=List[ScriptVersion])
async def list_versions(script_id: str):
    with domain_errors():
        return _review_use_case().list_versions(script_id)
