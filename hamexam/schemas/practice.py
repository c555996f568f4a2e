"""
Pydantic schemas for practice requests and responses
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from uuid import UUID
from datetime import datetime


class PresentedQuestion(BaseModel):
    """Question as shown to the user: shuffled options, no answer key"""
    id: UUID
    external_id: str
    library_code: Optional[str] = None
    question_type: str
    difficulty: Optional[str] = None
    category: Optional[str] = None
    title: str
    image_path: Optional[str] = None
    options: List[Dict[str, str]]
    answer_mapping: Dict[str, str]  # display id -> canonical id


class ProgressInfo(BaseModel):
    correct_count: int
    incorrect_count: int
    last_answered: Optional[datetime] = None
    last_correct: Optional[bool] = None


class NextQuestionResponse(BaseModel):
    question: PresentedQuestion
    progress: Optional[ProgressInfo] = None


class SeenRequest(BaseModel):
    question_id: UUID


class SeenResponse(BaseModel):
    success: bool
    progress: Optional[ProgressInfo] = None


class AnswerSubmission(BaseModel):
    """Schema for a practice answer; user_answer may be a list, string or JSON string"""
    question_id: UUID
    user_answer: Any = Field(..., description="Selected display ids")
    answer_mapping: Optional[Dict[str, str]] = None


class DailyPracticeProgress(BaseModel):
    today_count: int
    target: int
    completed: bool
    streak: int
    reward_granted: bool
    reward_points: int


class AnswerResult(BaseModel):
    """Response after grading a practice answer"""
    is_correct: bool
    user_answer: List[str]
    original_user_answer: List[str]
    correct_answers: List[str]
    original_correct_answers: List[str]
    explanation: Optional[str] = None
    progress: Optional[ProgressInfo] = None
    points_earned: int
    daily_practice: DailyPracticeProgress


class HistoryItem(BaseModel):
    question: PresentedQuestion
    progress: Optional[ProgressInfo] = None


class HistoryResponse(BaseModel):
    questions: List[HistoryItem]
    total: int
