"""
Question library import

Uploaded library files are normalized here once; nothing downstream sees the
loose shapes that exports from different tools produce.
"""
import hashlib
import json
import logging
import os
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

import aiofiles
from sqlalchemy.orm import Session

from hamexam.config import settings
from hamexam.database import atomic
from hamexam.exceptions import ValidationError
from hamexam.models import ExamPreset, Question, QuestionLibrary
from hamexam.models.types import utcnow
from hamexam.services.shuffle_service import ShuffleService
from hamexam.utils.normalize import (
    derive_correct_answers,
    normalize_answer_list,
    normalize_options,
    normalize_question_type,
    normalize_tags,
)

logger = logging.getLogger(__name__)

VISIBILITY_VALUES = ("PUBLIC", "ADMIN_ONLY", "CUSTOM")
DIFFICULTY_VALUES = ("easy", "medium", "hard")
_PRESET_INT_FIELDS = (
    "duration_minutes", "total_questions", "pass_score",
    "single_choice_count", "multiple_choice_count",
)


def _pick(raw: Dict[str, Any], *keys: str) -> Any:
    """First present value among snake_case and camelCase spellings"""
    for key in keys:
        if raw.get(key) not in (None, ""):
            return raw[key]
    return None


def _code_from(value: str) -> str:
    code = re.sub(r"[^a-zA-Z0-9_-]+", "_", value.strip())
    code = re.sub(r"_{2,}", "_", code).strip("_-")
    if not code:
        raise ValidationError("Library needs a code or a short name")
    return code.upper()


def parse_payload(content: bytes) -> Dict[str, Any]:
    try:
        payload = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ValidationError(f"Library file is not valid JSON: {str(e)}")
    if not isinstance(payload, dict):
        raise ValidationError("Library file must be a JSON object")
    return payload


def normalize_preset(raw: Dict[str, Any], index: int) -> Dict[str, Any]:
    code = str(raw.get("code") or "").strip()
    name = str(raw.get("name") or "").strip()
    if not code or not name:
        raise ValidationError(f"Exam preset {index + 1} is missing code or name")

    preset = {"code": code.upper(), "name": name, "description": raw.get("description")}
    for field in _PRESET_INT_FIELDS:
        camel = re.sub(r"_([a-z])", lambda m: m.group(1).upper(), field)
        try:
            value = int(_pick(raw, field, camel))
        except (TypeError, ValueError):
            value = 0
        if value <= 0:
            raise ValidationError(f"Exam preset {code}: {field} must be a positive integer")
        preset[field] = value

    try:
        preset["true_false_count"] = max(0, int(_pick(raw, "true_false_count", "trueFalseCount") or 0))
    except (TypeError, ValueError):
        preset["true_false_count"] = 0
    return preset


def normalize_library_header(raw: Any) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate the library header

    Returns:
        Tuple of (library fields, warnings)
    """
    if not isinstance(raw, dict):
        raise ValidationError("Library file is missing the library header")

    warnings = []
    name = str(raw.get("name") or "").strip()
    if not name:
        raise ValidationError("Library header is missing name")
    short_name = str(_pick(raw, "short_name", "shortName") or "").strip()
    if not short_name:
        raise ValidationError("Library header is missing short_name")

    if raw.get("code"):
        code = _code_from(str(raw["code"]))
    else:
        code = _code_from(short_name)
        warnings.append(f"No library code given; derived {code} from short_name")

    visibility = str(raw.get("visibility") or "ADMIN_ONLY").strip().upper()
    if visibility not in VISIBILITY_VALUES:
        raise ValidationError(f"Invalid library visibility: {raw.get('visibility')}")

    presets = [normalize_preset(p, i) for i, p in enumerate(raw.get("presets") or [])]
    if not presets:
        warnings.append("No exam presets given; the default preset will be used")

    return {
        "code": code,
        "name": name,
        "short_name": short_name,
        "region": str(raw.get("region") or "").strip() or None,
        "visibility": visibility,
        "presets": presets,
    }, warnings


def normalize_question(raw: Any, library_code: str, index: int) -> Dict[str, Any]:
    """Normalize one imported question into column values"""
    if not isinstance(raw, dict):
        raise ValidationError(f"Question {index + 1} is not an object")

    external_id = _pick(raw, "external_id", "externalId", "id", "uuid")
    if external_id is None:
        raise ValidationError(f"Question {index + 1} has no id")
    external_id = str(external_id).strip()

    title = str(raw.get("title") or "").strip()
    if not title:
        raise ValidationError(f"Question {external_id} has no title")

    options = normalize_options(raw.get("options"))
    if len(options) < 2:
        raise ValidationError(f"Question {external_id} needs at least two options")
    if len(options) > len(ShuffleService.DISPLAY_IDS):
        raise ValidationError(
            f"Question {external_id} has {len(options)} options; "
            f"at most {len(ShuffleService.DISPLAY_IDS)} can be served"
        )

    counts = Counter(opt["id"] for opt in options)
    duplicates = sorted(option_id for option_id, n in counts.items() if n > 1)
    if duplicates:
        raise ValidationError(f"Question {external_id} has duplicate option ids {duplicates}")

    option_ids = {opt["id"] for opt in options}
    correct_answers = normalize_answer_list(_pick(raw, "correct_answers", "correctAnswers"))
    if not correct_answers:
        correct_answers = derive_correct_answers(options)
    if not correct_answers:
        raise ValidationError(f"Question {external_id} has no correct answer")
    unknown = [a for a in correct_answers if a not in option_ids]
    if unknown:
        raise ValidationError(f"Question {external_id} answer key references unknown options {unknown}")

    category = raw.get("category")
    sub_section = None
    if isinstance(category, dict):
        sub_section = _pick(category, "sub_section", "subSection")
        main = category.get("main") if isinstance(category.get("main"), dict) else category
        category = main.get("name")

    difficulty = str(raw.get("difficulty") or "medium").strip().lower()

    return {
        "library_code": library_code,
        "external_id": external_id,
        "question_type": normalize_question_type(
            _pick(raw, "question_type", "questionType", "type"), len(correct_answers)
        ),
        "difficulty": difficulty if difficulty in DIFFICULTY_VALUES else "medium",
        "category": str(category).strip() if category else None,
        "sub_section": str(sub_section).strip() if sub_section else None,
        "title": title,
        "options": [{"id": opt["id"], "text": opt["text"]} for opt in options],
        "correct_answers": correct_answers,
        "explanation": raw.get("explanation") if isinstance(raw.get("explanation"), str) else None,
        "tags": normalize_tags(raw.get("tags")),
        "image_path": _pick(raw, "image_path", "imagePath", "picture", "image_url", "imageUrl"),
    }


class ImportService:
    """Upserts a library, its presets and its questions"""

    def import_library(
        self,
        db: Session,
        payload: Dict[str, Any],
        source_file: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Import a normalized library payload

        Questions are upserted by (library_code, external_id); presets are
        replaced when the file provides any.
        """
        header, warnings = normalize_library_header(payload.get("library"))
        raw_questions = payload.get("questions")
        if not isinstance(raw_questions, list) or not raw_questions:
            raise ValidationError("Library file has no questions")

        questions = [normalize_question(q, header["code"], i) for i, q in enumerate(raw_questions)]
        seen = set()
        for q in questions:
            if q["external_id"] in seen:
                raise ValidationError(f"Duplicate question id {q['external_id']}")
            seen.add(q["external_id"])

        created = updated = 0
        with atomic(db):
            library = db.query(QuestionLibrary).filter(
                QuestionLibrary.code == header["code"]
            ).with_for_update().first()
            if library is None:
                library = QuestionLibrary(code=header["code"])
                db.add(library)

            library.name = header["name"]
            library.short_name = header["short_name"]
            library.region = header["region"]
            library.visibility = header["visibility"]
            if source_file:
                library.source_file = source_file
            db.flush()

            if header["presets"]:
                db.query(ExamPreset).filter(ExamPreset.library_id == library.id).delete(
                    synchronize_session="fetch"
                )
                for preset in header["presets"]:
                    db.add(ExamPreset(library_id=library.id, **preset))

            existing = {
                q.external_id: q for q in db.query(Question).filter(
                    Question.library_code == header["code"]
                ).all()
            }
            for data in questions:
                question = existing.get(data["external_id"])
                if question is None:
                    db.add(Question(**data))
                    created += 1
                else:
                    for field, value in data.items():
                        setattr(question, field, value)
                    updated += 1

            db.flush()
            library.total_questions = db.query(Question).filter(
                Question.library_code == header["code"]
            ).count()
            total = library.total_questions

        logger.info(
            f"Imported library {header['code']}: {created} created, {updated} updated, total={total}"
        )

        return {
            "library": {"code": header["code"], "name": header["name"], "total_questions": total},
            "created": created,
            "updated": updated,
            "warnings": warnings,
        }

    async def archive_file(self, library_code: str, content: bytes, original_name: Optional[str] = None) -> Dict[str, Any]:
        """Store the raw uploaded file under LIBRARY_FILE_DIR/<code>/"""
        safe_code = re.sub(r"[^a-zA-Z0-9_-]+", "_", library_code).strip("_-") or "LIBRARY"
        safe_name = re.sub(r"[^a-zA-Z0-9._-]+", "_", original_name or f"{safe_code}.json").strip("_-")
        timestamp = utcnow().strftime("%Y%m%dT%H%M%S%fZ")

        directory = os.path.join(settings.LIBRARY_FILE_DIR, safe_code)
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, f"{timestamp}_{safe_name or 'library.json'}")

        async with aiofiles.open(path, 'wb') as f:
            await f.write(content)

        logger.info(f"Archived library file {path}")
        return {
            "path": path,
            "size": len(content),
            "checksum": hashlib.sha256(content).hexdigest(),
        }


# Global instance
import_service = ImportService()
