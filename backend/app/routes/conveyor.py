"""
Conveyor routes - triggers, pipeline items, event replay, the live event
stream, settings and stats.

Handlers stay thin: they resolve the shared service container, call a use
case or repository and translate domain errors.
"""

import asyncio
from typing import AsyncIterator, List, Optional, Sequence

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from ..config.constants import MAX_SSE_REPLAY, SSE_HEARTBEAT_SECONDS
from ..core import get_logger
from ..models import (
    ConveyorSettings,
    EventData,
    EventLogResponse,
    EventType,
    ItemStatus,
    PipelineEvent,
    PipelineItem,
    ProcessItemRequest,
    ProcessResultResponse,
    SettingsUpdateRequest,
    TriggerResponse,
    UserStatsResponse,
)
from ..services.container import get_container
from ..services.pipeline import ProcessResult, UserEventStream
from ..services.use_cases import TriggerUseCase
from .errors import domain_errors

router = APIRouter(prefix="/conveyor", tags=["conveyor"])
logger = get_logger(__name__, component="conveyor_routes")


def _trigger_use_case() -> TriggerUseCase:
    container = get_container()
    return TriggerUseCase(
        container.items,
        container.settings,
        container.audit,
        container.orchestrator,
        container.runner,
        container.bus,
    )


def _result_response(result: ProcessResult) -> ProcessResultResponse:
    return ProcessResultResponse(
        success=result.success,
        item_id=result.item_id,
        script_id=result.script_id,
        error=result.error,
        rejected=result.rejected,
    )


def _get_item(item_id: str) -> PipelineItem:
    item = get_container().items.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


# === Processing ===

@router.post("/{user_id}/trigger", response_model=TriggerResponse)
async def trigger_conveyor(user_id: str):
    """Run one batch for the user now"""
    with domain_errors():
        summary = await _trigger_use_case().trigger_for_user(user_id)
    return TriggerResponse(
        user_id=summary.user_id,
        processed=summary.processed,
        skipped=summary.skipped,
        failed=summary.failed,
        stopped_reason=summary.stopped_reason,
        results=[_result_response(result) for result in summary.results],
    )


@router.post("/{user_id}/items/process", response_model=ProcessResultResponse)
async def process_item(user_id: str, request: ProcessItemRequest):
    """Run one specific source item through the pipeline"""
    with domain_errors():
        result = await _trigger_use_case().process_specific_item(user_id, request.source)
    return _result_response(result)


# === Items ===

@router.get("/{user_id}/items", response_model=List[PipelineItem])
async def list_items(user_id: str, status: Optional[ItemStatus] = None, limit: int = 50):
    return get_container().items.list_by_user(user_id, status=status, limit=limit)


@router.get("/items/{item_id}", response_model=PipelineItem)
async def get_item(item_id: str):
    return _get_item(item_id)


@router.post("/items/{item_id}/retry", response_model=ProcessResultResponse)
async def retry_item(item_id: str):
    with domain_errors():
        result = await _trigger_use_case().retry_item(item_id)
    return _result_response(result)


@router.post("/items/{item_id}/cancel", response_model=PipelineItem)
async def cancel_item(item_id: str):
    with domain_errors():
        return _trigger_use_case().cancel_item(item_id)


@router.get("/items/{item_id}/events", response_model=EventLogResponse)
async def get_item_events(item_id: str, stage: Optional[int] = None):
    """Replay the durable event log of one item, in emission order"""
    item = _get_item(item_id)
    events = get_container().events.list_for_item(item.user_id, item.id, stage=stage)
    return EventLogResponse(item_id=item.id, events=[event.model_dump(mode="json") for event in events])


# === Settings and stats ===

@router.get("/{user_id}/settings", response_model=ConveyorSettings)
async def get_settings(user_id: str):
    return get_container().settings.get_or_create(user_id)


@router.put("/{user_id}/settings", response_model=ConveyorSettings)
async def update_settings(user_id: str, request: SettingsUpdateRequest):
    fields = request.model_dump(exclude_none=True)
    if "duration_range" in fields and fields["duration_range"][0] > fields["duration_range"][1]:
        raise HTTPException(status_code=400, detail="duration_range must be [min, max]")
    with domain_errors():
        return get_container().settings.update(user_id, **fields)


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
async def get_stats(user_id: str):
    container = get_container()
    settings = container.settings.get_or_create(user_id)
    return UserStatsResponse(
        user_id=user_id,
        items_processed_today=settings.items_processed_today,
        daily_limit=settings.daily_limit,
        current_month_cost=settings.current_month_cost,
        monthly_budget_limit=settings.monthly_budget_limit,
        total_processed=settings.total_processed,
        total_passed=settings.total_passed,
        total_failed=settings.total_failed,
        total_approved=settings.total_approved,
        total_rejected=settings.total_rejected,
        approval_rate=settings.approval_rate,
        learned_threshold=settings.learned_threshold,
        items_by_status=container.items.count_by_status(user_id),
    )


# === Live events ===

def _sse_message(event: PipelineEvent) -> str:
    return f"event: {event.type.value}\ndata: {event.model_dump_json()}\n\n"


async def stream_user_events(
    stream: UserEventStream,
    request: Optional[Request] = None,
    replay: Sequence[PipelineEvent] = (),
    limit: Optional[int] = None,
    heartbeat_seconds: float = SSE_HEARTBEAT_SECONDS,
) -> AsyncIterator[str]:
    """
    Server-sent events for one user.

    Sends a connection message, then the replayed events, then live events
    as they are published, with a comment heartbeat while idle. ``limit``
    closes the stream after that many pipeline events. The bus subscription
    is released however the stream ends.
    """
    sent = 0
    try:
        yield _sse_message(PipelineEvent(
            type=EventType.AGENT_MESSAGE,
            user_id=stream.user_id,
            item_id="system",
            data=EventData(message="Connected to event stream"),
        ))
        for event in replay:
            if limit is not None and sent >= limit:
                return
            yield _sse_message(event)
            sent += 1

        while limit is None or sent < limit:
            if request is not None and await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(stream.get(), timeout=heartbeat_seconds)
            except asyncio.TimeoutError:
                yield ": heartbeat\n\n"
                continue
            yield _sse_message(event)
            sent += 1
    finally:
        stream.close()
        logger.info("Event stream closed", extra={
            "user_id": stream.user_id,
            "sent": sent,
            "dropped": stream.dropped,
        })


@router.get("/{user_id}/events/stream")
async def stream_events(
    user_id: str,
    request: Request,
    replay: int = Query(0, ge=0, le=MAX_SSE_REPLAY),
    limit: Optional[int] = Query(None, ge=1),
):
    """
    Live pipeline events for a user (text/event-stream).

    ``replay`` first resends that many of the user's most recent logged
    events, oldest first, so a reconnecting client can catch up.
    """
    container = get_container()
    stream = container.bus.subscribe_user(user_id)
    history = list(reversed(container.events.list_for_user(user_id, limit=replay))) if replay else []
    logger.info("Event stream opened", extra={"user_id": user_id, "replay": len(history)})
    return StreamingResponse(
        stream_user_events(stream, request, history, limit),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
