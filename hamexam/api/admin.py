"""
Admin API endpoints: style presets, points config, users, audit logs, libraries, imports
"""
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session
from uuid import UUID
import logging
from typing import List, Optional

from hamexam.core.auth import require_admin
from hamexam.database import get_db
from hamexam.models import User
from hamexam.schemas.ai import QuotaStatus, StylePresetCreate, StylePresetOut, StylePresetUpdate
from hamexam.schemas.points import PointsConfigOut, PointsConfigUpdate
from hamexam.schemas.question import LibraryOut, LibraryUpdate
from hamexam.schemas.user import (
    AdminUserList, AuditLogList, ImportResponse, QuotaLimitUpdate
)
from hamexam.services.audit_service import create_audit_log, list_audit_logs
from hamexam.services.import_service import (
    import_service, normalize_library_header, parse_payload
)
from hamexam.services.library_service import library_service
from hamexam.services.points_service import points_service
from hamexam.services.quota_service import quota_service
from hamexam.services.style_service import style_service
from hamexam.services.user_service import user_service

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)

MAX_LIBRARY_FILE_BYTES = 20 * 1024 * 1024


def _preset_out(db: Session, preset) -> StylePresetOut:
    out = StylePresetOut.model_validate(preset)
    out.usage_count = style_service.usage_count(db, preset.id)
    return out


# Style presets

@router.get("/ai-style-presets", response_model=List[StylePresetOut])
async def list_style_presets(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return [_preset_out(db, p) for p in style_service.list_all(db)]


@router.post("/ai-style-presets", response_model=StylePresetOut, status_code=201)
async def create_style_preset(
    body: StylePresetCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a preset; is_default clears any previous default"""
    preset = style_service.create_preset(db, body.model_dump())
    create_audit_log(db, "AI_STYLE_PRESET_CREATED", admin.id, "AiStylePreset", preset.id, {"name": preset.name})
    return _preset_out(db, preset)


@router.put("/ai-style-presets/{preset_id}", response_model=StylePresetOut)
async def update_style_preset(
    preset_id: UUID,
    body: StylePresetUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    preset = style_service.update_preset(db, preset_id, body.model_dump(exclude_unset=True))
    create_audit_log(db, "AI_STYLE_PRESET_UPDATED", admin.id, "AiStylePreset", preset.id)
    return _preset_out(db, preset)


@router.delete("/ai-style-presets/{preset_id}", status_code=204)
async def delete_style_preset(
    preset_id: UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    style_service.delete_preset(db, preset_id)
    create_audit_log(db, "AI_STYLE_PRESET_DELETED", admin.id, "AiStylePreset", preset_id)


# Points config

@router.get("/points-config", response_model=PointsConfigOut)
async def get_points_config(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return points_service.get_config(db)


@router.put("/points-config", response_model=PointsConfigOut)
async def update_points_config(
    body: PointsConfigUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    changes = body.model_dump(exclude_unset=True)
    config = points_service.update_config(db, changes)
    create_audit_log(db, "POINTS_CONFIG_UPDATED", admin.id, "PointsConfig", config.id, changes)
    return config


# Users

@router.get("/users", response_model=AdminUserList)
async def list_users(
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return user_service.list_users(db, search, limit, offset)


@router.put("/users/{user_id}/quota", response_model=QuotaStatus)
async def update_user_quota(
    user_id: UUID,
    body: QuotaLimitUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Set a user's AI quota limit (null = unlimited)"""
    status = quota_service.set_limit(db, user_id, body.ai_quota_limit)
    create_audit_log(
        db, "AI_QUOTA_LIMIT_UPDATED", admin.id, "User", user_id, {"limit": body.ai_quota_limit}
    )
    return status


@router.post("/users/{user_id}/reset", response_model=QuotaStatus)
async def reset_user_quota(
    user_id: UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    status = quota_service.reset_usage(db, user_id)
    create_audit_log(db, "AI_QUOTA_RESET", admin.id, "User", user_id)
    return status


# Audit logs

@router.get("/audit-logs", response_model=AuditLogList)
async def audit_logs(
    action: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return list_audit_logs(db, action, limit, offset)


# Question import

@router.post("/import-questions", response_model=ImportResponse, status_code=201)
async def import_questions(
    file: UploadFile = File(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Import a question library JSON file

    - Validates and normalizes the library header and every question
    - Archives the raw file
    - Upserts questions by (library code, external id)
    """
    if not file.filename.endswith('.json'):
        raise HTTPException(status_code=400, detail="Only JSON files are allowed")

    content = await file.read()
    if len(content) > MAX_LIBRARY_FILE_BYTES:
        raise HTTPException(status_code=413, detail="Library file too large")

    payload = parse_payload(content)
    header, _ = normalize_library_header(payload.get("library"))

    archive = await import_service.archive_file(header["code"], content, file.filename)
    summary = import_service.import_library(db, payload, source_file=archive["path"])

    create_audit_log(
        db, "QUESTION_LIBRARY_IMPORTED", admin.id, "QuestionLibrary", header["code"],
        {"created": summary["created"], "updated": summary["updated"], "file": archive["path"]}
    )
    return {**summary, "archive": archive}


# Question libraries

@router.put("/question-libraries/{code}", response_model=LibraryOut)
async def update_library(
    code: str,
    body: LibraryUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Rename a library or change who can see it"""
    changes = body.model_dump(exclude_none=True)
    library = library_service.update_library(db, code, changes)
    create_audit_log(db, "QUESTION_LIBRARY_UPDATED", admin.id, "QuestionLibrary", library.code, changes)
    return library
