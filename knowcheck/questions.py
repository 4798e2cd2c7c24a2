"""Questions of the supported kinds and the answers users give to them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Iterable

from knowcheck.errors import InvalidParamError, UnprocessableEntityError

_MAX_VARIANTS = 4


class QuestionType(IntEnum):
    """Kinds of questions."""

    SINGLE_SELECTION = 1
    MULTI_SELECTION = 2
    TRUE_OR_FALSE = 3

    def __str__(self) -> str:
        return _TYPE_LABELS[self]


_TYPE_LABELS = {
    QuestionType.SINGLE_SELECTION: "single selection",
    QuestionType.MULTI_SELECTION: "multi selection",
    QuestionType.TRUE_OR_FALSE: "true or false",
}


@dataclass(frozen=True)
class UserAnswer:
    """The selections a user made for one question."""

    question_id: int
    selections: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.question_id == 0:
            raise UnprocessableEntityError("invalid id")
        object.__setattr__(self, "selections", tuple(self.selections))


@dataclass(frozen=True)
class Question(ABC):
    """A question on some topic."""

    id: int
    topic: str
    subject: str

    question_type: ClassVar[QuestionType]

    @abstractmethod
    def is_answer_correct(self, answer: UserAnswer) -> bool:
        """Tell whether the answer is right."""


@dataclass(frozen=True)
class SingleSelectionQuestion(Question):
    """A question with exactly one correct variant."""

    variants: tuple[str, ...]
    correct_answer: str

    question_type: ClassVar[QuestionType] = QuestionType.SINGLE_SELECTION

    def __post_init__(self) -> None:
        object.__setattr__(self, "variants", tuple(self.variants))

    def is_answer_correct(self, answer: UserAnswer) -> bool:
        if len(answer.selections) != 1:
            return False
        return answer.selections[0] == self.correct_answer


@dataclass(frozen=True)
class MultiSelectionQuestion(Question):
    """A question with one or more correct variants, all of which must be chosen."""

    variants: tuple[str, ...]
    correct_answers: tuple[str, ...]

    question_type: ClassVar[QuestionType] = QuestionType.MULTI_SELECTION

    def __post_init__(self) -> None:
        object.__setattr__(self, "variants", tuple(self.variants))
        object.__setattr__(self, "correct_answers", tuple(self.correct_answers))

    def is_answer_correct(self, answer: UserAnswer) -> bool:
        if len(answer.selections) != len(self.correct_answers):
            return False
        return sorted(answer.selections) == sorted(self.correct_answers)


@dataclass(frozen=True)
class TrueOrFalseQuestion(Question):
    """A statement that is either true or false."""

    correct_answer: bool
    variants: tuple[str, ...] = field(default=("true", "false"), init=False)

    question_type: ClassVar[QuestionType] = QuestionType.TRUE_OR_FALSE

    def is_answer_correct(self, answer: UserAnswer) -> bool:
        if len(answer.selections) != 1:
            return False
        choice = answer.selections[0].lower()
        if choice == "true":
            return self.correct_answer is True
        if choice == "false":
            return self.correct_answer is False
        return False


def new_question(
    question_id: int,
    question_type: QuestionType | int,
    topic: str,
    subject: str,
    variants: Iterable[str],
    correct_answers: Iterable[str],
) -> Question:
    """Build and validate a question of the given type."""
    if question_id == 0:
        raise InvalidParamError("id is 0")
    if topic == "":
        raise InvalidParamError("topic is empty")
    if subject == "":
        raise InvalidParamError("subject is empty")

    variants = tuple(variants)
    correct_answers = tuple(correct_answers)

    try:
        kind = QuestionType(question_type)
    except ValueError:
        raise InvalidParamError(
            f"unknown question type: {int(question_type)}"
        ) from None

    if kind is QuestionType.SINGLE_SELECTION:
        if len(variants) > _MAX_VARIANTS:
            raise InvalidParamError("variants must be equal or greater then lentgh 4")
        if len(correct_answers) != 1:
            raise InvalidParamError("only one correct answer for this question type")
        return SingleSelectionQuestion(
            question_id, topic, subject, variants, correct_answers[0]
        )

    if kind is QuestionType.MULTI_SELECTION:
        if len(variants) > _MAX_VARIANTS:
            raise InvalidParamError("variants must be equal or greater then lentgh 4")
        if not correct_answers:
            raise InvalidParamError(
                "minimum one correct answer for multi selection question question"
            )
        return MultiSelectionQuestion(
            question_id, topic, subject, variants, correct_answers
        )

    if len(correct_answers) != 1:
        raise InvalidParamError("only one correct answer for this question type")
    return TrueOrFalseQuestion(
        question_id, topic, subject, correct_answers[0].lower() == "true"
    )