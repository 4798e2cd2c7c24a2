"""SQL-backed storage for topics, questions and sessions."""

from __future__ import annotations

import json
import logging
import os
import random
import sqlite3
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Iterable, Iterator, Sequence

from knowcheck.dto import UserAnswerDTO, UserAnswersListDTO
from knowcheck.errors import InternalError, InvalidParamError, KnowledgeCheckerError
from knowcheck.generator import TimeIDGenerator
from knowcheck.questions import Question, QuestionType, UserAnswer, new_question
from knowcheck.service import Storage
from knowcheck.session import (
    ActiveSessionState,
    CompletedSessionState,
    InitSessionState,
    Session,
    SessionState,
    SessionStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_TOPIC_LIMIT = 10

# Questions picked for each (topic, question type) pair.
_PER_GROUP = 2

_SCHEMA = """
CREATE TABLE IF NOT EXISTS topics (
    topic_id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS question_types (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE
);
INSERT OR IGNORE INTO question_types (id, name) VALUES
    (1, 'single selection'),
    (2, 'multi selection'),
    (3, 'true or false');
CREATE TABLE IF NOT EXISTS questions (
    question_id INTEGER PRIMARY KEY,
    topic_id INTEGER NOT NULL REFERENCES topics (topic_id),
    question_type_id INTEGER NOT NULL REFERENCES question_types (id),
    subject TEXT NOT NULL,
    variants TEXT NOT NULL DEFAULT '[]',
    correct_answers TEXT NOT NULL DEFAULT '[]',
    usage_count INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    state TEXT NOT NULL,
    topics TEXT NOT NULL,
    questions TEXT,
    answers TEXT,
    created_at TEXT,
    duration_limit INTEGER,
    is_expired INTEGER,
    is_passed INTEGER,
    comment TEXT,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS sessions_session_id ON sessions (session_id);
"""

_QUESTION_TYPES_BY_NAME = {str(kind): kind for kind in QuestionType}


class SqlStorage(Storage):
    """Storage kept in an SQLite database, created on first use."""

    def __init__(
        self, database: str | os.PathLike[str], questions_limit: int = DEFAULT_TOPIC_LIMIT
    ) -> None:
        target = os.fspath(database)
        if not target.strip():
            raise InvalidParamError("connection string is empty")
        self.questions_limit = questions_limit
        try:
            self._db = sqlite3.connect(target)
            self._db.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise InvalidParamError(f"connection creating error: {exc}") from exc
        self._closed = False

    def close(self) -> None:
        """Close the database; further calls do nothing."""
        if not self._closed:
            self._closed = True
            self._db.close()

    def __enter__(self) -> SqlStorage:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def _internal(self, what: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            logger.error("%s: %s", what, exc)
            raise InternalError(f"{what}: {exc}") from exc

    def get_topics(self) -> list[str]:
        logger.info("get_topics started")
        with self._internal("getting topic names failure"):
            rows = self._db.execute("SELECT name FROM topics ORDER BY topic_id").fetchall()
        logger.info("get_topics completed")
        return [name for (name,) in rows]

    def get_questions(self, topics: Sequence[str]) -> list[Question]:
        logger.info("get_questions started")
        topics = list(topics)
        if not topics:
            return []
        placeholders = ",".join("?" * len(topics))
        query = f"""
            SELECT q.question_id, qt.name, t.name, q.subject, q.variants,
                   q.correct_answers, q.usage_count, t.topic_id, qt.id
            FROM questions q
            JOIN topics t ON q.topic_id = t.topic_id
            JOIN question_types qt ON q.question_type_id = qt.id
            WHERE t.name IN ({placeholders})
        """
        with self._internal("get questions from db failure"), self._db:
            rows = self._db.execute(query, topics).fetchall()
            groups: dict[tuple[int, int], list[Any]] = defaultdict(list)
            for row in rows:
                groups[(row[7], row[8])].append(row)
            picked = []
            for group in groups.values():
                group.sort(key=lambda r: (r[6], random.random()))
                picked.extend(group[:_PER_GROUP])
            self._db.executemany(
                "UPDATE questions SET usage_count = usage_count + 1 WHERE question_id = ?",
                [(row[0],) for row in picked],
            )
        picked.sort(key=lambda r: (r[2], r[1]))
        questions = self._build_questions(row[:6] for row in picked)
        logger.info("get_questions completed")
        return questions

    def store_session(self, session: Session) -> None:
        logger.info("store_session started")
        status = session.status
        columns: dict[str, Any] = {
            "session_id": session.session_id,
            "user_id": session.user_id,
            "state": status.value,
            "topics": json.dumps(list(session.topics), ensure_ascii=False),
        }

        if status is SessionStatus.ACTIVE:
            columns["questions"] = json.dumps(self._question_ids(session))
            started_at = self._read_state(session.started_at, "get startedAt from session state")
            duration = self._read_state(
                session.duration_limit, "get duration limit from session state"
            )
            columns["created_at"] = started_at.isoformat()
            columns["duration_limit"] = duration // timedelta(microseconds=1)
        elif status is SessionStatus.COMPLETED:
            columns["questions"] = json.dumps(self._question_ids(session))
            answers = self._read_state(
                session.user_answers, "get user answers from session state"
            )
            answers_dto = UserAnswersListDTO(
                [UserAnswerDTO(a.question_id, list(a.selections)) for a in answers]
            )
            expired = self._read_state(
                session.is_expired, "get session expired status failure"
            )
            result = self._read_state(
                session.session_result, "get session result status failure"
            )
            columns["answers"] = answers_dto.to_json()
            columns["is_expired"] = expired
            columns["is_passed"] = result.is_success
            columns["comment"] = result.grade

        names = ", ".join(columns)
        placeholders = ", ".join("?" * len(columns))
        with self._internal("store session finished with failure"), self._db:
            self._db.execute(
                f"INSERT INTO sessions ({names}) VALUES ({placeholders})",
                list(columns.values()),
            )
        logger.info("store_session completed")

    def get_session(self, session_id: int) -> Session:
        logger.info("get_session started")
        with self._internal("scan session data failure"):
            row = self._db.execute(
                """
                SELECT user_id, state, topics, questions, answers,
                       created_at, duration_limit, is_expired
                FROM sessions
                WHERE session_id = ?
                ORDER BY id DESC
                LIMIT 1
                """,
                (session_id,),
            ).fetchone()
        if row is None:
            raise InternalError("scan session data failure: no rows in result set")
        (user_id, state_name, topics_raw, questions_raw, answers_raw,
         created_at, duration_limit, is_expired) = row

        try:
            topics = json.loads(topics_raw)
            status = SessionStatus(state_name)
        except ValueError as exc:
            raise InternalError(f"scan session data failure: {exc}") from exc

        session = Session(user_id, topics, TimeIDGenerator(), session_id=session_id)

        state: SessionState
        if status is SessionStatus.INIT:
            state = InitSessionState(session)
        elif status is SessionStatus.ACTIVE:
            questions = self._questions_map(questions_raw)
            started_at = datetime.fromisoformat(created_at) if created_at else None
            state = ActiveSessionState(
                questions,
                session,
                timedelta(microseconds=duration_limit or 0),
                started_at=started_at,
            )
        else:
            questions = self._questions_map(questions_raw)
            try:
                answers_dto = UserAnswersListDTO.from_json(answers_raw or "")
            except ValueError as exc:
                raise InternalError(f"unmarshaling failure: {exc}") from exc
            if is_expired is None:
                raise InternalError("scan session data failure: is_expired is null")
            answers = [
                UserAnswer(dto.question_id, tuple(dto.answers or ()))
                for dto in answers_dto.answers_list
            ]
            state = CompletedSessionState(questions, session, answers, bool(is_expired))

        session.change_state(state)
        return session

    @staticmethod
    def _read_state(getter, what: str):
        try:
            return getter()
        except KnowledgeCheckerError as exc:
            logger.error("%s: %s", what, exc)
            raise InternalError(f"{what}: {exc}") from exc

    def _question_ids(self, session: Session) -> list[int]:
        questions = self._read_state(session.questions, "get questions from session state")
        return [question.id for question in questions]

    def _questions_map(self, raw_ids: str | None) -> dict[int, Question]:
        try:
            ids = json.loads(raw_ids) if raw_ids else []
        except ValueError as exc:
            raise InternalError(f"scan session data failure: {exc}") from exc
        return {question.id: question for question in self._questions_by_id(ids)}

    def _questions_by_id(self, ids: Sequence[int]) -> list[Question]:
        if not ids:
            return []
        placeholders = ",".join("?" * len(ids))
        with self._internal("get questions from db failure"):
            rows = self._db.execute(
                f"""
                SELECT q.question_id, qt.name, t.name, q.subject,
                       q.variants, q.correct_answers
                FROM questions q
                JOIN question_types qt ON q.question_type_id = qt.id
                JOIN topics t ON q.topic_id = t.topic_id
                WHERE q.question_id IN ({placeholders})
                ORDER BY q.question_id
                """,
                list(ids),
            ).fetchall()
        return self._build_questions(rows)

    @staticmethod
    def _build_questions(rows: Iterable[Sequence[Any]]) -> list[Question]:
        questions = []
        for question_id, type_name, topic, subject, variants_raw, correct_raw in rows:
            try:
                variants = json.loads(variants_raw)
                correct = json.loads(correct_raw)
            except ValueError as exc:
                raise InternalError(f"scan questions data failure: {exc}") from exc
            kind = _QUESTION_TYPES_BY_NAME.get(type_name, 0)
            try:
                question = new_question(question_id, kind, topic, subject, variants, correct)
            except KnowledgeCheckerError as exc:
                logger.error("creating questions failure: %s", exc)
                raise InternalError("creating questions failure") from exc
            questions.append(question)
        return questions