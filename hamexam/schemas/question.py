"""
Pydantic schemas for library and question browsing
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Optional
from uuid import UUID
from datetime import datetime

from hamexam.schemas.practice import ProgressInfo


class LibraryPresetOut(BaseModel):
    code: str
    name: str
    description: Optional[str] = None
    duration_minutes: int
    total_questions: int
    pass_score: int
    single_choice_count: int
    multiple_choice_count: int
    true_false_count: int

    class Config:
        from_attributes = True


class LibraryOut(BaseModel):
    id: UUID
    code: str
    name: str
    short_name: Optional[str] = None
    region: Optional[str] = None
    visibility: str
    total_questions: int
    exam_presets: List[LibraryPresetOut] = []
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LibraryList(BaseModel):
    libraries: List[LibraryOut]


class LibraryUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    short_name: Optional[str] = Field(None, max_length=100)
    region: Optional[str] = Field(None, max_length=50)
    visibility: Optional[str] = None


class QuestionSummary(BaseModel):
    """Question in canonical option order; no answer key"""
    id: UUID
    external_id: str
    library_code: Optional[str] = None
    question_type: str
    difficulty: Optional[str] = None
    category: Optional[str] = None
    sub_section: Optional[str] = None
    title: str
    image_path: Optional[str] = None
    tags: List[str] = []
    options: List[Dict[str, str]]


class QuestionPage(BaseModel):
    library_code: str
    questions: List[QuestionSummary]
    total: int
    page: int
    page_size: int
    total_pages: int


class QuestionDetail(BaseModel):
    question: QuestionSummary
    progress: Optional[ProgressInfo] = None
