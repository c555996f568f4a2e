"""
Database models package
"""
from hamexam.models.user import User, UserSettings
from hamexam.models.question import QuestionLibrary, ExamPreset, Question
from hamexam.models.progress import UserQuestion, DailyPracticeRecord
from hamexam.models.points import PointsHistory, CheckInHistory, PointsConfig
from hamexam.models.exam import Exam, ExamQuestion, ExamResult
from hamexam.models.ai import AiStylePreset, Explanation, ExplanationVote, AiUsageLog
from hamexam.models.audit import AuditLog

__all__ = [
    "User", "UserSettings",
    "QuestionLibrary", "ExamPreset", "Question",
    "UserQuestion", "DailyPracticeRecord",
    "PointsHistory", "CheckInHistory", "PointsConfig",
    "Exam", "ExamQuestion", "ExamResult",
    "AiStylePreset", "Explanation", "ExplanationVote", "AiUsageLog",
    "AuditLog",
]
