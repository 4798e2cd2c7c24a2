"""Test sessions and the states they pass through."""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import ClassVar, Iterable, Mapping, Protocol, Sequence

from knowcheck.errors import InvalidParamError, InvalidStateError
from knowcheck.generator import IDGenerator
from knowcheck.questions import Question, UserAnswer

DEFAULT_TOPIC_TIME_LIMIT = timedelta(minutes=10)
DEFAULT_BORDER_RESULT = 60.0


class SessionStatus(str, Enum):
    """Names of the states a session can be in."""

    INIT = "init state"
    ACTIVE = "active state"
    COMPLETED = "completed state"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a completed session."""

    is_success: bool
    grade: str


class StateHolder(Protocol):
    """Something whose state can be replaced by the state itself."""

    def change_state(self, state: SessionState) -> None: ...


class SessionState(ABC):
    """A state of a session; every operation is refused unless a state supports it."""

    status: ClassVar[SessionStatus]

    def _unsupported(self, operation: str) -> InvalidStateError:
        return InvalidStateError(f"{self.status} not support `{operation}`")

    def set_questions(
        self, questions: Mapping[int, Question], duration: timedelta
    ) -> None:
        """Attach questions and a time limit to the session."""
        raise self._unsupported("set_questions")

    def set_user_answers(self, answers: Iterable[UserAnswer]) -> None:
        """Record the user's answers."""
        raise self._unsupported("set_user_answers")

    def session_result(self) -> SessionResult:
        """Compute the result of the session."""
        raise self._unsupported("session_result")

    def duration_limit(self) -> timedelta:
        """Return the time the user has for the session."""
        raise self._unsupported("duration_limit")

    def is_expired(self) -> bool:
        """Tell whether the answers came in after the time limit."""
        raise self._unsupported("is_expired")

    def questions(self) -> list[Question]:
        """Return the questions of the session."""
        raise self._unsupported("questions")

    def started_at(self) -> datetime:
        """Return the moment the session became active."""
        raise self._unsupported("started_at")

    def user_answers(self) -> list[UserAnswer]:
        """Return the answers the user gave."""
        raise self._unsupported("user_answers")


class InitSessionState(SessionState):
    """A freshly created session waiting for its questions."""

    status = SessionStatus.INIT

    def __init__(self, holder: StateHolder) -> None:
        self._holder = holder

    def set_questions(
        self, questions: Mapping[int, Question], duration: timedelta
    ) -> None:
        if not questions:
            raise InvalidParamError("questions for selected topics not changed")
        self._holder.change_state(
            ActiveSessionState(questions, self._holder, duration)
        )


class ActiveSessionState(SessionState):
    """A session whose questions are being answered."""

    status = SessionStatus.ACTIVE

    def __init__(
        self,
        questions: Mapping[int, Question],
        holder: StateHolder,
        duration: timedelta,
        started_at: datetime | None = None,
    ) -> None:
        self._questions = dict(questions)
        self._holder = holder
        self._duration = duration
        self._started_at = (
            started_at if started_at is not None else datetime.now(timezone.utc)
        )

    def set_user_answers(self, answers: Iterable[UserAnswer]) -> None:
        expired = datetime.now(timezone.utc) > self._started_at + self._duration
        self._holder.change_state(
            CompletedSessionState(self._questions, self._holder, answers, expired)
        )

    def duration_limit(self) -> timedelta:
        return self._duration

    def questions(self) -> list[Question]:
        return list(self._questions.values())

    def started_at(self) -> datetime:
        return self._started_at


class CompletedSessionState(SessionState):
    """A session whose answers have been handed in."""

    status = SessionStatus.COMPLETED

    def __init__(
        self,
        questions: Mapping[int, Question],
        holder: StateHolder,
        answers: Iterable[UserAnswer],
        expired: bool,
    ) -> None:
        self._questions = dict(questions)
        self._holder = holder
        self._answers = list(answers)
        self._expired = expired

    def session_result(self) -> SessionResult:
        if self._expired:
            return SessionResult(is_success=False, grade="session expired")

        correct = 0
        for answer in self._answers:
            question = self._questions.get(answer.question_id)
            if question is None:
                raise InvalidParamError(
                    f"user anwer has invalid question id: {answer.question_id}"
                )
            if question.is_answer_correct(answer):
                correct += 1

        if not self._questions:
            return SessionResult(is_success=False, grade="NaN percents")

        percent = correct / len(self._questions) * 100
        return SessionResult(
            is_success=percent >= DEFAULT_BORDER_RESULT,
            grade=f"{percent:.2f} percents",
        )

    def is_expired(self) -> bool:
        return self._expired

    def questions(self) -> list[Question]:
        return list(self._questions.values())

    def user_answers(self) -> list[UserAnswer]:
        return list(self._answers)


class Session:
    """A user's knowledge check on a set of topics."""

    def __init__(
        self,
        user_id: int,
        topics: Sequence[str],
        generator: IDGenerator | None,
        session_id: int | None = None,
    ) -> None:
        if user_id == 0:
            raise InvalidParamError("invalid userID")
        if generator is None:
            raise InvalidParamError("id generator not set")
        if not topics:
            raise InvalidParamError("topics was not selected")

        generated = generator.generate_id()
        self._user_id = user_id
        self._session_id = session_id if session_id is not None else generated
        self._topics = list(topics)
        self._state: SessionState = InitSessionState(self)

    @classmethod
    def with_state(
        cls,
        session_id: int,
        user_id: int,
        topics: Sequence[str],
        state: SessionState,
    ) -> Session:
        """Build a session in a given state without validation."""
        session = cls.__new__(cls)
        session._session_id = session_id
        session._user_id = user_id
        session._topics = list(topics)
        session._state = state
        return session

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def user_id(self) -> int:
        return self._user_id

    @property
    def topics(self) -> list[str]:
        return self._topics

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    def change_state(self, state: SessionState) -> None:
        """Replace the current state."""
        self._state = state

    def set_questions(
        self, questions: Mapping[int, Question], duration: timedelta
    ) -> None:
        """Attach questions and a time limit."""
        self._state.set_questions(questions, duration)

    def set_user_answers(self, answers: Iterable[UserAnswer]) -> None:
        """Record the user's answers."""
        self._state.set_user_answers(answers)

    def session_result(self) -> SessionResult:
        """Compute the result."""
        return self._state.session_result()

    def duration_limit(self) -> timedelta:
        """Return the time limit."""
        return self._state.duration_limit()

    def is_expired(self) -> bool:
        """Tell whether the answers came too late."""
        return self._state.is_expired()

    def questions(self) -> list[Question]:
        """Return the questions."""
        return self._state.questions()

    def started_at(self) -> datetime:
        """Return when the session became active."""
        return self._state.started_at()

    def user_answers(self) -> list[UserAnswer]:
        """Return the user's answers."""
        return self._state.user_answers()