"""
Question library models
"""
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from hamexam.database import Base
from hamexam.models.types import JSONType, utcnow
import uuid


class QuestionLibrary(Base):
    """
    Question libraries - one imported bank (e.g. A/B/C class)
    """
    __tablename__ = "question_libraries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    short_name = Column(String(100))
    region = Column(String(50))
    visibility = Column(String(20), nullable=False, default="PUBLIC")
    total_questions = Column(Integer, nullable=False, default=0)
    source_file = Column(String(500))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    exam_presets = relationship(
        "ExamPreset", back_populates="library", cascade="all, delete-orphan",
        order_by="ExamPreset.code"
    )

    def __repr__(self):
        return f"<QuestionLibrary(code={self.code}, name={self.name})>"


class ExamPreset(Base):
    """
    Exam presets - question counts, duration and pass mark for a library
    """
    __tablename__ = "exam_presets"
    __table_args__ = (UniqueConstraint("library_id", "code"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    library_id = Column(Uuid, ForeignKey("question_libraries.id", ondelete="CASCADE"), nullable=False)
    code = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    duration_minutes = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    pass_score = Column(Integer, nullable=False)
    single_choice_count = Column(Integer, nullable=False, default=0)
    multiple_choice_count = Column(Integer, nullable=False, default=0)
    true_false_count = Column(Integer, nullable=False, default=0)

    library = relationship("QuestionLibrary", back_populates="exam_presets")

    def __repr__(self):
        return f"<ExamPreset(code={self.code}, total={self.total_questions})>"


class Question(Base):
    """
    Questions table - canonical options and correct answers

    options: [{"id": "A", "text": "..."}]
    correct_answers: ["B"] (canonical option ids)
    """
    __tablename__ = "questions"
    __table_args__ = (UniqueConstraint("library_code", "external_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    library_code = Column(String(50), index=True)
    external_id = Column(String(50), nullable=False)
    question_type = Column(String(20), nullable=False, default="single_choice")
    difficulty = Column(String(20))
    category = Column(String(255))
    sub_section = Column(String(255))
    title = Column(Text, nullable=False)
    options = Column(JSONType, nullable=False)
    correct_answers = Column(JSONType, nullable=False)
    explanation = Column(Text)
    ai_explanation = Column(Text)
    tags = Column(JSONType)
    image_path = Column(String(500))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<Question(id={self.id}, external_id={self.external_id})>"
