"""
Pydantic schemas for mock exams
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from uuid import UUID
from datetime import datetime

from hamexam.schemas.practice import PresentedQuestion


class ExamStartRequest(BaseModel):
    library: str = Field(..., min_length=1, description="Question library code")
    preset_code: Optional[str] = None


class ExamConfig(BaseModel):
    duration: int
    total_questions: int
    pass_score: int
    single_choice: int
    multiple_choice: int
    true_false: int


class ExamStartResponse(BaseModel):
    exam_id: UUID
    exam_result_id: UUID
    questions: List[PresentedQuestion]
    config: ExamConfig
    preset: Dict[str, str]
    library: Dict[str, Optional[str]]
    start_time: datetime


class ExamSubmission(BaseModel):
    """Answers and the mappings handed out at start, keyed by question id"""
    exam_result_id: UUID
    answers: Dict[str, Any]
    answer_mappings: Optional[Dict[str, Dict[str, str]]] = None


class ExamSubmitResponse(BaseModel):
    success: bool
    score: int
    total_questions: int
    correct_count: int
    wrong_count: int
    passed: bool
    pass_score: int
    question_results: List[Dict[str, Any]]


class ExamResultSummary(BaseModel):
    id: UUID
    exam_id: UUID
    library_code: str
    preset_code: Optional[str] = None
    score: int
    total_questions: int
    correct_count: int
    passed: bool
    submitted_at: datetime


class ExamResultList(BaseModel):
    results: List[ExamResultSummary]
    total: int
