"""
Gemini AI service for structured question explanations
"""
import google.generativeai as genai
from hamexam.config import settings
from hamexam.services.style_service import compose
from hamexam.utils.normalize import normalize_answer_list
import json
import logging
from typing import List, Dict, Any, Optional

logger = logging.getLogger(__name__)

# Configure Gemini API
genai.configure(api_key=settings.GEMINI_API_KEY)

BASE_SYSTEM_PROMPT = """
You are an experienced amateur radio licensing instructor writing structured
explanations for exam questions.

{{AI_STYLE}}

Return ONLY valid JSON (no markdown, no preamble) in this exact format:
{
  "summary": "One or two sentences stating the conclusion",
  "answer": ["B"],
  "option_analysis": [
    {"option": "A", "verdict": "wrong", "reason": "Why A is wrong"},
    {"option": "B", "verdict": "correct", "reason": "Why B is right"}
  ],
  "key_points": ["Key regulation or concept"],
  "memory_aids": [{"type": "MNEMONIC", "text": "Short memory trick"}],
  "difficulty": 2,
  "insufficiency": false
}

Rules:
1. Cover every option in option_analysis, in the order given.
2. verdict is either "correct" or "wrong".
3. difficulty is an integer from 1 to 5.
4. If you cannot determine the answer with confidence, set insufficiency to true.
"""


class GeminiService:
    """Service for Gemini explanation generation"""

    def __init__(self):
        self.model = genai.GenerativeModel(settings.GEMINI_MODEL)
        self.model_name = settings.GEMINI_MODEL

    def build_system_prompt(self, style_prompt: Optional[str]) -> str:
        """Base instructions with the user's style merged in"""
        return compose(BASE_SYSTEM_PROMPT, style_prompt)

    def _create_question_prompt(
        self,
        title: str,
        options: List[Dict[str, Any]],
        correct_answers: List[str],
        syllabus_path: Optional[str] = None
    ) -> str:
        """Create the per-question part of the prompt"""
        options_text = "\n".join(f"{opt['id']}. {opt.get('text', '')}" for opt in options)

        sections = [
            f"**Question:** {title}",
            f"**Options:**\n{options_text}",
            f"**Correct answer:** {', '.join(correct_answers)}",
        ]
        if syllabus_path:
            sections.append(f"**Syllabus:** {syllabus_path}")

        return "\n\n".join(sections)

    def generate_explanation(
        self,
        title: str,
        options: List[Dict[str, Any]],
        correct_answers: List[str],
        syllabus_path: Optional[str] = None,
        style_prompt: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Generate a structured explanation for one question

        Args:
            title: Question text
            options: Canonical options [{"id", "text"}]
            correct_answers: Canonical correct option ids
            syllabus_path: "Category > Sub section" when known
            style_prompt: User's composed style prompt

        Returns:
            Explanation dictionary
        """
        try:
            prompt = "\n\n".join([
                self.build_system_prompt(style_prompt),
                self._create_question_prompt(title, options, correct_answers, syllabus_path),
            ])

            response = self.model.generate_content(prompt)

            return self._parse_explanation_response(response.text, options, correct_answers)

        except Exception as e:
            logger.error(f"Failed to generate explanation: {str(e)}")
            raise

    def _parse_explanation_response(
        self,
        response_text: str,
        options: List[Dict[str, Any]],
        correct_answers: List[str]
    ) -> Dict[str, Any]:
        """Parse Gemini's explanation into the stored shape"""
        try:
            # Clean response
            cleaned = response_text.strip()

            # Remove markdown code blocks
            if cleaned.startswith("```json"):
                cleaned = cleaned[7:-3].strip()
            elif cleaned.startswith("```"):
                cleaned = cleaned[3:-3].strip()

            explanation = json.loads(cleaned)

            if not isinstance(explanation, dict):
                raise ValueError("Response is not an explanation object")

            try:
                difficulty = int(explanation.get("difficulty", 3))
            except (TypeError, ValueError):
                difficulty = 3

            return {
                "summary": str(explanation.get("summary", "")),
                "answer": normalize_answer_list(explanation.get("answer")) or list(correct_answers),
                "option_analysis": list(explanation.get("option_analysis") or []),
                "key_points": [str(p) for p in explanation.get("key_points") or []][:5],
                "memory_aids": list(explanation.get("memory_aids") or [])[:3],
                "difficulty": max(1, min(5, difficulty)),
                "insufficiency": bool(explanation.get("insufficiency", False)),
            }

        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Failed to parse explanation JSON: {str(e)}")
            logger.error(f"Response text: {response_text[:500]}")

            return self._create_fallback_explanation(options, correct_answers)

    def _create_fallback_explanation(
        self,
        options: List[Dict[str, Any]],
        correct_answers: List[str]
    ) -> Dict[str, Any]:
        """Minimal explanation built from the answer key"""
        correct = set(correct_answers)
        return {
            "summary": f"The correct answer is {', '.join(correct_answers)}.",
            "answer": list(correct_answers),
            "option_analysis": [
                {
                    "option": str(opt["id"]),
                    "verdict": "correct" if str(opt["id"]) in correct else "wrong",
                    "reason": "See the answer key.",
                }
                for opt in options
            ],
            "key_points": [],
            "memory_aids": [],
            "difficulty": 3,
            "insufficiency": True,
        }


# Global instance
gemini_service = GeminiService()
