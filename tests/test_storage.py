import sqlite3
from datetime import timedelta

import pytest

from knowcheck.errors import InternalError, InvalidParamError
from knowcheck.generator import IDGenerator
from knowcheck.questions import QuestionType, UserAnswer
from knowcheck.session import Session, SessionStatus
from knowcheck.storage import SqlStorage


class _FixedGenerator(IDGenerator):
    def __init__(self, value):
        self.value = value

    def generate_id(self):
        return self.value


def _seed(path):
    con = sqlite3.connect(path)
    with con:
        con.execute("INSERT INTO topics (topic_id, name) VALUES (1, 'Databases')")
        con.execute("INSERT INTO topics (topic_id, name) VALUES (2, 'Networks')")
        rows = [
            (1, 1, 1, "q1", '["A","B","C"]', '["A"]'),
            (2, 1, 1, "q2", '["A","B","C"]', '["A"]'),
            (3, 1, 1, "q3", '["A","B","C"]', '["A"]'),
            (4, 1, 3, "q4", "[]", '["true"]'),
            (5, 2, 2, "q5", '["x","y","z"]', '["x","y"]'),
        ]
        con.executemany(
            "INSERT INTO questions (question_id, topic_id, question_type_id, subject,"
            " variants, correct_answers) VALUES (?, ?, ?, ?, ?, ?)",
            rows,
        )
    con.close()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "kc.db"


@pytest.fixture
def storage(db_path):
    st = SqlStorage(db_path)
    _seed(db_path)
    yield st
    st.close()


def _usage(db_path):
    con = sqlite3.connect(db_path)
    rows = dict(con.execute("SELECT question_id, usage_count FROM questions"))
    con.close()
    return rows


def test_empty_connection_string_rejected():
    with pytest.raises(InvalidParamError):
        SqlStorage("   ")


def test_get_topics(storage):
    assert storage.get_topics() == ["Databases", "Networks"]


def test_get_questions_picks_two_per_group_and_counts_usage(storage, db_path):
    questions = storage.get_questions(["Databases"])
    types = [q.question_type for q in questions]
    assert types.count(QuestionType.SINGLE_SELECTION) == 2
    assert types.count(QuestionType.TRUE_OR_FALSE) == 1
    usage = _usage(db_path)
    assert sum(usage.values()) == len(questions)
    assert all(usage[q.id] == 1 for q in questions)


def test_get_questions_prefers_least_used(storage):
    first = storage.get_questions(["Databases"])
    second = storage.get_questions(["Databases"])
    singles = {
        q.id for q in first + second if q.question_type is QuestionType.SINGLE_SELECTION
    }
    assert singles == {1, 2, 3}


def test_get_questions_ordered_by_topic_then_type(storage):
    questions = storage.get_questions(["Networks", "Databases"])
    assert [q.topic for q in questions] == ["Databases"] * 3 + ["Networks"]
    assert [q.question_type for q in questions] == [
        QuestionType.SINGLE_SELECTION,
        QuestionType.SINGLE_SELECTION,
        QuestionType.TRUE_OR_FALSE,
        QuestionType.MULTI_SELECTION,
    ]


def test_get_questions_unknown_topic(storage):
    assert storage.get_questions(["Unknown"]) == []


def test_invalid_question_row_raises(storage, db_path):
    con = sqlite3.connect(db_path)
    with con:
        con.execute("UPDATE questions SET correct_answers = '[\"A\",\"B\"]' WHERE question_id = 1")
        con.execute("UPDATE questions SET correct_answers = '[\"A\",\"B\"]' WHERE question_id = 2")
        con.execute("UPDATE questions SET correct_answers = '[\"A\",\"B\"]' WHERE question_id = 3")
    con.close()
    with pytest.raises(InternalError):
        storage.get_questions(["Databases"])


def test_init_session_round_trip(storage):
    session = Session(7, ["Databases"], _FixedGenerator(42))
    storage.store_session(session)
    restored = storage.get_session(42)
    assert restored.status is SessionStatus.INIT
    assert restored.session_id == 42
    assert restored.user_id == 7
    assert restored.topics == ["Databases"]


def test_active_session_round_trip(storage):
    session = Session(7, ["Databases"], _FixedGenerator(42))
    questions = {q.id: q for q in storage.get_questions(["Databases"])}
    session.set_questions(questions, timedelta(minutes=5))
    storage.store_session(session)
    restored = storage.get_session(42)
    assert restored.status is SessionStatus.ACTIVE
    assert sorted(q.id for q in restored.questions()) == sorted(questions)
    assert restored.duration_limit() == timedelta(minutes=5)
    assert restored.started_at() == session.started_at()


def test_restored_active_session_can_be_completed(storage):
    session = Session(7, ["Databases"], _FixedGenerator(42))
    questions = {q.id: q for q in storage.get_questions(["Databases"])}
    session.set_questions(questions, timedelta(minutes=5))
    storage.store_session(session)
    restored = storage.get_session(42)
    restored.set_user_answers([UserAnswer(qid, ("A",)) for qid in questions])
    assert restored.status is SessionStatus.COMPLETED


def test_completed_session_round_trip(storage):
    session = Session(7, ["Databases", "Networks"], _FixedGenerator(42))
    questions = {q.id: q for q in storage.get_questions(["Databases", "Networks"])}
    session.set_questions(questions, timedelta(minutes=5))
    answers = [UserAnswer(q.id, (q.variants[0],)) for q in questions.values()]
    session.set_user_answers(answers)
    storage.store_session(session)
    restored = storage.get_session(42)
    assert restored.status is SessionStatus.COMPLETED
    assert restored.user_answers() == answers
    assert restored.is_expired() is False
    assert restored.session_result() == session.session_result()


def test_latest_stored_state_wins(storage):
    session = Session(7, ["Databases"], _FixedGenerator(42))
    storage.store_session(session)
    session.set_questions(
        {q.id: q for q in storage.get_questions(["Databases"])}, timedelta(minutes=1)
    )
    storage.store_session(session)
    assert storage.get_session(42).status is SessionStatus.ACTIVE


def test_missing_session_raises(storage):
    with pytest.raises(InternalError):
        storage.get_session(999)


def test_close_is_idempotent_and_blocks_use(storage):
    storage.close()
    storage.close()
    with pytest.raises(InternalError):
        storage.get_topics()


def test_context_manager_closes(db_path):
    with SqlStorage(db_path) as st:
        assert st.get_topics() == []
    with pytest.raises(InternalError):
        st.get_topics()