"""
Exam models - generated exam papers and their results
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from hamexam.database import Base
from hamexam.models.types import JSONType, utcnow
import uuid


class Exam(Base):
    """
    Exams table - one generated paper
    """
    __tablename__ = "exams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    library_code = Column(String(50), nullable=False)
    preset_code = Column(String(50))
    duration = Column(Integer, nullable=False)  # minutes
    pass_score = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    exam_questions = relationship(
        "ExamQuestion", back_populates="exam", order_by="ExamQuestion.order_index",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Exam(id={self.id}, library={self.library_code}, preset={self.preset_code})>"


class ExamQuestion(Base):
    __tablename__ = "exam_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_id = Column(Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("questions.id"), nullable=False)
    order_index = Column(Integer, nullable=False)

    exam = relationship("Exam", back_populates="exam_questions")
    question = relationship("Question")


class ExamResult(Base):
    """
    Exam results - created empty at start, filled once on submit
    """
    __tablename__ = "exam_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_id = Column(Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    score = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False)
    correct_count = Column(Integer, nullable=False, default=0)
    passed = Column(Boolean, nullable=False, default=False)
    answers = Column(JSONType)
    submitted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    exam = relationship("Exam")

    def __repr__(self):
        return f"<ExamResult(user_id={self.user_id}, exam_id={self.exam_id}, score={self.score})>"
