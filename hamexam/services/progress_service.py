"""
Per-user, per-question progress tracking
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hamexam.database import atomic
from hamexam.models import UserQuestion
from hamexam.models.types import utcnow

logger = logging.getLogger(__name__)


class ProgressService:
    """
    Upserts keyed by (user_id, question_id)

    Counters are incremented with SQL expressions on a locked row. When two
    requests race to create the first row, the loser's insert fails inside a
    savepoint and it falls back to incrementing the winner's row.
    """

    def _locked(self, db: Session, user_id: UUID, question_id: UUID) -> Optional[UserQuestion]:
        return db.query(UserQuestion).filter(
            UserQuestion.user_id == user_id,
            UserQuestion.question_id == question_id
        ).with_for_update().first()

    def _insert(self, db: Session, record: UserQuestion) -> bool:
        try:
            with db.begin_nested():
                db.add(record)
            return True
        except IntegrityError:
            logger.info(
                f"Concurrent progress insert for user={record.user_id}, "
                f"question={record.question_id}; retrying as update"
            )
            return False

    def record_answer(
        self,
        db: Session,
        user_id: UUID,
        question_id: UUID,
        was_correct: bool,
        now: Optional[datetime] = None
    ) -> UserQuestion:
        """
        Record one graded answer

        Returns:
            The updated UserQuestion row
        """
        now = now or utcnow()

        with atomic(db):
            record = self._locked(db, user_id, question_id)

            if record is None:
                record = UserQuestion(
                    user_id=user_id,
                    question_id=question_id,
                    correct_count=1 if was_correct else 0,
                    incorrect_count=0 if was_correct else 1,
                    last_answered=now,
                    last_correct=was_correct,
                )
                if self._insert(db, record):
                    return record
                record = self._locked(db, user_id, question_id)

            if was_correct:
                record.correct_count = UserQuestion.correct_count + 1
            else:
                record.incorrect_count = UserQuestion.incorrect_count + 1
            record.last_answered = now
            record.last_correct = was_correct
            db.flush()
            db.refresh(record)

        return record

    def mark_seen(
        self,
        db: Session,
        user_id: UUID,
        question_id: UUID,
        now: Optional[datetime] = None
    ) -> UserQuestion:
        """Record a view without an answer; counters stay untouched"""
        now = now or utcnow()

        with atomic(db):
            record = self._locked(db, user_id, question_id)

            if record is None:
                record = UserQuestion(
                    user_id=user_id,
                    question_id=question_id,
                    correct_count=0,
                    incorrect_count=0,
                    last_answered=now,
                    last_correct=None,
                )
                if self._insert(db, record):
                    return record
                record = self._locked(db, user_id, question_id)

            record.last_answered = now
            db.flush()

        return record


# Global instance
progress_service = ProgressService()
