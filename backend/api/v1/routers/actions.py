"""
Actions Router — Action recommendations, work lists, and export.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from actions.engine import GenerationScope, generate_actions, list_recommendations
from actions.export import EXPORT_FILENAME, actions_to_csv, actions_to_json
from actions.lifecycle import (
    ActionNotFoundError,
    InvalidStatusTransitionError,
    mark_exported,
    update_action_status,
)
from actions.lists import (
    build_audit_list,
    build_cycle_count_list,
    build_reslot_suggestions,
    build_training_flags,
)
from actions.types import ActionStatus, ActionType, ExportFormat, Priority
from api.deps import get_current_user, get_db
from core.config import get_settings

router = APIRouter(prefix="/api/v1/actions", tags=["actions"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class ActionResponse(BaseModel):
    action_id: UUID
    action_type: str
    priority: int
    description: str
    instructions: str | None
    discrepancy_id: UUID | None
    sku: str | None
    location_code: str | None
    estimated_impact: float
    status: str
    notes: str | None
    completed_by: str | None
    created_at: datetime
    completed_at: datetime | None
    exported_at: datetime | None

    model_config = {"from_attributes": True}


class GenerateRequest(BaseModel):
    scope: Literal["all"] = "all"
    zone: str | None = None
    location_code: str | None = None
    sku: str | None = None


class GenerateResponse(BaseModel):
    generated_count: int
    skipped_count: int
    failed_count: int
    actions: list[ActionResponse]


class CycleCountTask(BaseModel):
    sequence: int
    discrepancy_id: UUID
    location_code: str
    sku: str
    priority: str
    priority_score: int
    reason: str
    expected_variance: float
    zone: str | None
    product_cost: float | None


class CycleCountListResponse(BaseModel):
    generated_at: datetime
    task_count: int
    tasks: list[CycleCountTask]


class AuditLocation(BaseModel):
    location_code: str
    issue_count: int
    serious_issue_count: int
    issue_types: list[str]
    oldest_issue: datetime | None
    audit_checklist: list[str]


class AuditListResponse(BaseModel):
    generated_at: datetime
    location_count: int
    locations: list[AuditLocation]


class ReslotSuggestion(BaseModel):
    sku: str
    product_name: str | None
    category: str | None
    current_location_count: int
    total_issues: int
    total_variance: float
    recommendation: str
    reason: str


class ReslotResponse(BaseModel):
    generated_at: datetime
    suggestion_count: int
    suggestions: list[ReslotSuggestion]


class TrainingOperator(BaseModel):
    user_id: str
    operator_name: str | None
    adjustment_count: int
    total_adjusted: float
    locations_touched: int
    skus_touched: int
    related_issues: int
    training_priority: str
    recommended_training: list[str]


class TrainingFlagsResponse(BaseModel):
    generated_at: datetime
    period: dict[str, datetime]
    flag_count: int
    operators: list[TrainingOperator]


class StatusUpdateRequest(BaseModel):
    status: ActionStatus
    notes: str | None = None
    completed_by: str | None = None


class BatchExportRequest(BaseModel):
    action_ids: list[UUID]


class BatchExportResponse(BaseModel):
    exported_count: int
    message: str


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/recommendations", response_model=list[ActionResponse])
async def get_recommendations(
    action_type: ActionType | None = None,
    priority: Priority | None = None,
    status: ActionStatus = ActionStatus.PENDING,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """List recommendations, most urgent first."""
    return await list_recommendations(db, action_type=action_type, priority=priority, status=status, limit=limit)


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    body: GenerateRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Generate recommendations for open discrepancies. Existing pairs are skipped."""
    body = body or GenerateRequest()
    scope = GenerationScope(zone=body.zone, location_code=body.location_code, sku=body.sku)
    result = await generate_actions(db, scope)
    return GenerateResponse(
        generated_count=result.generated_count,
        skipped_count=result.skipped_count,
        failed_count=result.failed_count,
        actions=[ActionResponse.model_validate(a) for a in result.created],
    )


@router.get("/cycle-count-list", response_model=CycleCountListResponse)
async def get_cycle_count_list(
    max_tasks: int = Query(50, ge=1, le=500),
    zone: str | None = None,
    priority: Priority | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Prioritized cycle count task list."""
    settings = get_settings()
    return await build_cycle_count_list(
        db,
        max_tasks=max_tasks,
        zone=zone,
        priority=priority,
        stale_days=settings.stale_discrepancy_days,
    )


@router.get("/audit-list", response_model=AuditListResponse)
async def get_audit_list(
    max_locations: int = Query(20, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Locations that need a physical audit."""
    return await build_audit_list(db, max_locations=max_locations)


@router.get("/reslot-suggestions", response_model=ReslotResponse)
async def get_reslot_suggestions(db: AsyncSession = Depends(get_db)):
    """SKUs whose issues are spread across several locations."""
    return await build_reslot_suggestions(db, limit=get_settings().reslot_max_suggestions)


@router.get("/training-flags", response_model=TrainingFlagsResponse)
async def get_training_flags(
    days: int | None = Query(None, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    """Operator training recommendations over a trailing window."""
    window = days if days is not None else get_settings().default_training_window_days
    return await build_training_flags(db, days=window)


@router.get("/export")
async def export_actions(
    action_type: ActionType | None = None,
    status: ActionStatus = ActionStatus.PENDING,
    export_format: ExportFormat = Query(ExportFormat.CSV, alias="format"),
    db: AsyncSession = Depends(get_db),
):
    """Export recommendations as CSV (attachment) or JSON."""
    actions = await list_recommendations(db, action_type=action_type, status=status, limit=None)
    if export_format == ExportFormat.CSV:
        return Response(
            content=actions_to_csv(actions),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
        )
    return actions_to_json(actions)


@router.post("/batch-export", response_model=BatchExportResponse)
async def batch_export(
    body: BatchExportRequest,
    db: AsyncSession = Depends(get_db),
):
    """Mark pending recommendations as exported for task creation."""
    exported = await mark_exported(db, body.action_ids)
    return BatchExportResponse(
        exported_count=exported,
        message=f"{exported} actions exported for task creation",
    )


@router.put("/{action_id}/status", response_model=ActionResponse)
async def put_action_status(
    action_id: UUID,
    body: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Update an action's status. Completing an action records who completed it."""
    completed_by = body.completed_by or user.get("email", "unknown")
    try:
        return await update_action_status(
            db,
            action_id,
            body.status,
            notes=body.notes,
            completed_by=completed_by,
        )
    except ActionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Action not found") from exc
    except InvalidStatusTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
