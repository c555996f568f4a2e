"""
AI explanation, quota and style preset endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from hamexam.config import settings
from hamexam.core.auth import get_current_user, is_admin
from hamexam.database import get_db
from hamexam.exceptions import HamExamError
from hamexam.models import User
from hamexam.schemas.ai import (
    ExplainRequest, ExplainResponse, QuotaStatus, StylePresetList,
    StylePresetPublic, VoteRequest, VoteResponse
)
from hamexam.services.audit_service import create_audit_log
from hamexam.services.explanation_service import explanation_service
from hamexam.services.quota_service import quota_service
from hamexam.services.style_service import style_service
from hamexam.utils.rate_limiter import RateLimiter, get_rate_limiter

router = APIRouter(tags=["ai"])
logger = logging.getLogger(__name__)

PROMPT_PREVIEW_LENGTH = 120


@router.post("/api/ai/explain", response_model=ExplainResponse)
async def explain_question(
    body: ExplainRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    limiter: RateLimiter = Depends(get_rate_limiter),
    db: Session = Depends(get_db)
):
    """
    Get or generate the AI explanation for a question

    - Cached published explanation is returned unless regenerating
    - Generation consumes AI quota (admins bypass the limit)
    - Regeneration beyond the daily free allowance costs points
    """
    request.state.user_id = current_user.id
    limiter.check_rate_limit(request, scope="ai-explain", limit=settings.AI_RATE_LIMIT_REQUESTS)

    try:
        return explanation_service.explain(
            db,
            current_user,
            body.question_id,
            regenerate=body.regenerate,
            is_admin=is_admin(current_user),
        )
    except HamExamError:
        raise
    except Exception as e:
        logger.error(f"Failed to generate AI explanation: {str(e)}")
        db.rollback()
        create_audit_log(
            db, "AI_EXPLANATION_ERROR", current_user.id, "Question", body.question_id,
            {"error": str(e)}
        )
        raise HTTPException(
            status_code=502, detail=f"Failed to generate AI explanation: {str(e)}"
        )


@router.get("/api/ai/quota", response_model=QuotaStatus)
async def ai_quota(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return quota_service.get_status(db, current_user.id)


@router.get("/api/ai/style-presets", response_model=StylePresetList)
async def list_style_presets(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Active presets, default first, with a short prompt preview"""
    presets = style_service.list_active(db)
    return StylePresetList(presets=[
        StylePresetPublic(
            id=p.id,
            name=p.name,
            description=p.description,
            prompt_preview=p.prompt[:PROMPT_PREVIEW_LENGTH],
            is_default=p.is_default,
        )
        for p in presets
    ])


@router.post("/api/explanations/{explanation_id}/vote", response_model=VoteResponse)
async def vote_explanation(
    explanation_id: UUID,
    body: VoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Vote on an explanation

    Repeating the same vote withdraws it; REPORT requires a reason.
    """
    return explanation_service.vote(
        db, current_user.id, explanation_id, body.vote, body.report_reason
    )
