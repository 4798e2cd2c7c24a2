"""Use cases around knowledge-check sessions."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Iterable, Sequence

from knowcheck.errors import InvalidParamError
from knowcheck.generator import IDGenerator
from knowcheck.questions import Question, UserAnswer
from knowcheck.session import Session, SessionResult

logger = logging.getLogger(__name__)

DEFAULT_TOPIC_DURATION = timedelta(minutes=10)


class Storage(ABC):
    """Persistence for topics, questions and sessions."""

    @abstractmethod
    def get_topics(self) -> list[str]:
        """Return the names of all topics."""

    @abstractmethod
    def get_questions(self, topics: Sequence[str]) -> list[Question]:
        """Return questions for the given topics."""

    @abstractmethod
    def store_session(self, session: Session) -> None:
        """Persist the current state of a session."""

    @abstractmethod
    def get_session(self, session_id: int) -> Session:
        """Load the latest stored state of a session."""


class SessionService:
    """Creates sessions and reports their results."""

    def __init__(
        self,
        storage: Storage | None,
        generator: IDGenerator | None,
        topic_duration: timedelta = DEFAULT_TOPIC_DURATION,
    ) -> None:
        if storage is None:
            raise InvalidParamError("storage not set")
        if generator is None:
            raise InvalidParamError("generator not set")
        self._storage = storage
        self._generator = generator
        self.topic_duration = topic_duration

    def show_topics(self) -> list[str]:
        """Return all available topics."""
        logger.info("show_topics started")
        try:
            topics = self._storage.get_topics()
        except Exception as exc:
            logger.error("get_topics: %s", exc)
            raise
        logger.info("show_topics completed")
        return topics

    def create_session(
        self, user_id: int, topics: Sequence[str]
    ) -> tuple[int, dict[int, Question]]:
        """Start a session; return its id and its questions keyed by id."""
        logger.info("create_session started")
        try:
            session = Session(user_id, topics, self._generator)
            questions = {q.id: q for q in self._storage.get_questions(topics)}
            session.set_questions(questions, self.topic_duration)
            self._storage.store_session(session)
        except Exception as exc:
            logger.error("create_session: %s", exc)
            raise
        logger.info("create_session completed")
        return session.session_id, questions

    def complete_session(
        self, session_id: int, answers: Iterable[UserAnswer]
    ) -> SessionResult:
        """Return the result of the stored session.

        The answers are not applied; the stored session must already be completed.
        """
        logger.info("complete_session started")
        try:
            session = self._storage.get_session(session_id)
            result = session.session_result()
        except Exception as exc:
            logger.error("complete_session: %s", exc)
            raise
        return result