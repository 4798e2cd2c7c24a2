"""JSON transfer objects for stored user answers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class UserAnswerDTO:
    """One answer as it appears in JSON."""

    question_id: int
    answers: list[str] | None = None

    def _to_dict(self) -> dict[str, Any]:
        return {"question_id": self.question_id, "answers": self.answers}

    @classmethod
    def _from_dict(cls, raw: Any) -> UserAnswerDTO:
        if not isinstance(raw, dict):
            raise ValueError("user answer must be an object")
        question_id = raw.get("question_id", 0)
        if question_id is None:
            question_id = 0
        if isinstance(question_id, bool) or not isinstance(question_id, int) or question_id < 0:
            raise ValueError(f"invalid question_id: {question_id!r}")
        answers = raw.get("answers")
        if answers is not None:
            if not isinstance(answers, list) or not all(isinstance(a, str) for a in answers):
                raise ValueError("answers must be a list of strings")
        return cls(question_id, answers)


@dataclass(frozen=True)
class UserAnswersListDTO:
    """All answers of a session, as stored in JSON."""

    answers_list: list[UserAnswerDTO] = field(default_factory=list)

    def to_json(self) -> str:
        """Serialise to compact JSON."""
        payload = {"user_answer": [a._to_dict() for a in self.answers_list]}
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json(cls, data: str | bytes) -> UserAnswersListDTO:
        """Parse JSON text; raise ValueError on malformed input."""
        raw = json.loads(data)
        if not isinstance(raw, dict):
            raise ValueError("document must be an object")
        items = raw.get("user_answer")
        if items is None:
            return cls([])
        if not isinstance(items, list):
            raise ValueError("user_answer must be a list")
        return cls([UserAnswerDTO._from_dict(item) for item in items])