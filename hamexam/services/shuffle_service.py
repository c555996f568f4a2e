"""
Option shuffling and display/canonical answer mapping
"""
import logging
import random
from typing import Any, Dict, Iterable, List, Optional, Tuple

from hamexam.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


class ShuffleService:
    """
    Randomize option order for one presentation of a question

    Each shuffled position gets a fresh display id from a fixed alphabet;
    the returned mapping (display id -> canonical id) is handed to the client
    and comes back with the submission.
    """

    DISPLAY_IDS = "ABCDEFGH"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.SystemRandom()

    def shuffle(
        self,
        options: List[Dict[str, Any]]
    ) -> Tuple[List[Dict[str, str]], Dict[str, str]]:
        """
        Shuffle options

        Args:
            options: Canonical options [{"id", "text", ...}]

        Returns:
            Tuple of (display_options, mapping); display options carry only
            id and text
        """
        if len(options) < 2:
            raise ValidationError("A question needs at least two options to shuffle")

        if len(options) > len(self.DISPLAY_IDS):
            raise ConfigurationError(
                f"Cannot label {len(options)} options; "
                f"display alphabet has {len(self.DISPLAY_IDS)} labels"
            )

        canonical_ids = [str(opt["id"]) for opt in options]
        if len(set(canonical_ids)) != len(canonical_ids):
            raise ValidationError(f"Duplicate option ids: {canonical_ids}")

        shuffled = list(options)
        self.rng.shuffle(shuffled)

        display_options = []
        mapping = {}
        for display_id, opt in zip(self.DISPLAY_IDS, shuffled):
            mapping[display_id] = str(opt["id"])
            display_options.append({"id": display_id, "text": str(opt.get("text", ""))})

        return display_options, mapping

    @staticmethod
    def reverse_mapping(mapping: Dict[str, str]) -> Dict[str, str]:
        """canonical id -> display id"""
        return {canonical: display for display, canonical in mapping.items()}

    def to_display_ids(self, canonical_ids: Iterable[str], mapping: Optional[Dict[str, str]]) -> List[str]:
        """Translate canonical ids into the labels the user saw"""
        reverse = self.reverse_mapping(mapping or {})
        return [reverse.get(cid, cid) for cid in canonical_ids]

    def display_options_from_mapping(
        self,
        options: List[Dict[str, Any]],
        mapping: Optional[Dict[str, str]]
    ) -> List[Dict[str, str]]:
        """
        Rebuild the displayed option list for review after grading

        Without a mapping the canonical order is returned.
        """
        lookup = {str(opt["id"]): str(opt.get("text", "")) for opt in options}
        if not mapping:
            return [
                {"id": cid, "original_id": cid, "text": text}
                for cid, text in lookup.items()
            ]
        return [
            {"id": display_id, "original_id": canonical_id, "text": lookup.get(canonical_id, "")}
            for display_id, canonical_id in sorted(mapping.items())
        ]


# Global instance
shuffle_service = ShuffleService()
