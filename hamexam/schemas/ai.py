"""
Pydantic schemas for AI explanations, quota and style presets
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from uuid import UUID
from datetime import datetime


class ExplainRequest(BaseModel):
    question_id: UUID
    regenerate: bool = False


class ExplainResponse(BaseModel):
    explanation: Dict[str, Any]
    explanation_id: UUID
    cached: bool
    regenerate: bool
    deducted_points: int = 0
    free_limit: Optional[int] = None
    free_attempts_remaining: Optional[int] = None


class QuotaStatus(BaseModel):
    limit: Optional[int] = None
    used: int
    remaining: Optional[int] = None
    unlimited: bool


class StylePresetPublic(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    prompt_preview: str
    is_default: bool


class StylePresetList(BaseModel):
    presets: List[StylePresetPublic]


class StylePresetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    prompt: str = Field(..., min_length=1)
    is_default: bool = False
    is_active: bool = True


class StylePresetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    prompt: Optional[str] = Field(None, min_length=1)
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


class StylePresetOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    prompt: str
    is_default: bool
    is_active: bool
    usage_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VoteRequest(BaseModel):
    vote: str = Field(..., pattern="^(UP|DOWN|REPORT)$")
    report_reason: Optional[str] = None


class VoteResponse(BaseModel):
    action: str  # created, updated, removed
    vote: Optional[str] = None
    upvotes: int
    downvotes: int
    wilson_score: float
