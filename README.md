# knowcheck

A small library for running knowledge checks. A user picks one or more
topics and receives a set of questions. The user answers them within a time
limit and gets a graded result. Sessions and questions can be kept in an
SQLite database.

## Questions

`knowcheck.questions` defines three kinds of question. They are listed by
the `QuestionType` enum, whose `str()` is `"single selection"`,
`"multi selection"` or `"true or false"`:

- `SingleSelectionQuestion`: the answer must hold exactly one selection,
  equal to the correct variant.
- `MultiSelectionQuestion`: the answer must hold the same selections as
  the correct answers, in any order.
- `TrueOrFalseQuestion`: its `variants` are `("true", "false")`. The
  answer must hold exactly one selection, `"true"` or `"false"`, compared
  without regard to case.

Every question is a frozen dataclass with `id`, `topic`, `subject` and a
`question_type` class attribute. Call `question.is_answer_correct(answer)`
with a `UserAnswer(question_id, selections)` to check an answer. A
`UserAnswer` with question id `0` raises `UnprocessableEntityError`.

`new_question(question_id, question_type, topic, subject, variants,
correct_answers)` builds a question of the given type. It raises
`InvalidParamError` in these cases:

- the id is zero;
- the topic or the subject is empty;
- the type is unknown;
- a selection question has more than four variants;
- a single-selection or true/false question does not have exactly one
  correct answer;
- a multi-selection question has no correct answer.

For a true/false question, the correct answer counts as true only when it
reads `"true"` in any case.

```python
from knowcheck.questions import QuestionType, UserAnswer, new_question

q = new_question(7, QuestionType.MULTI_SELECTION, "Databases", "Pick the SQL engines",
                 ["SQLite", "Redis", "PostgreSQL"], ["SQLite", "PostgreSQL"])
q.is_answer_correct(UserAnswer(7, ("PostgreSQL", "SQLite")))   # True
```

## Sessions

`knowcheck.session.Session(user_id, topics, generator, session_id=None)`
creates a session. The generator is an `IDGenerator`, and it supplies the
session id unless `session_id` is given. It raises `InvalidParamError`
in these cases:

- `user_id` is zero;
- the generator is `None`;
- no topics are given.

A session passes through three states. Its `status` property reports the
current one as a `SessionStatus`: `"init state"`, `"active state"` or
`"completed state"`.

1. `InitSessionState`: `set_questions(questions, duration)` takes a
   mapping of id to question and a `timedelta`. It moves the session on.
   An empty mapping raises `InvalidParamError`.
2. `ActiveSessionState`: the session records the time it became active.
   `started_at()`, `duration_limit()` and `questions()` are available.
   `set_user_answers(answers)` completes the session and notes whether the
   time limit had already passed.
3. `CompletedSessionState`: `questions()`, `user_answers()`,
   `is_expired()` and `session_result()` are available.

`session_result()` returns a `SessionResult(is_success, grade)`:

- If the session expired, the grade is `"session expired"` and it does
  not succeed.
- Otherwise the grade is the share of correct answers, such as
  `"66.67 percents"`, and the session succeeds at 60 % or more.
- An answer to a question that is not in the session raises
  `InvalidParamError`.

Any operation that the current state does not support raises
`InvalidStateError`. `Session.with_state(session_id, user_id, topics,
state)` builds a session in a given state without validation.

## Errors

`knowcheck.errors` holds `InvalidParamError`, `UnprocessableEntityError`,
`InvalidStateError` and `InternalError`. All of them derive from
`KnowledgeCheckerError`, so one `except` clause catches everything the
library raises.

## Service

`knowcheck.service.SessionService(storage, generator, topic_duration=10
minutes)` takes a `Storage` and an `IDGenerator`. It raises
`InvalidParamError` if either is `None`. It offers three operations:

- `show_topics()` returns the storage's topics.
- `create_session(user_id, topics)` creates a session, fetches questions
  for the topics, activates the session with `topic_duration` and stores
  it. It returns `(session_id, questions_by_id)`.
- `complete_session(session_id, answers)` loads the stored session and
  returns its `session_result()`. The answers passed in are not applied:
  the stored session must already be completed, or `InvalidStateError` is
  raised.

`Storage` is an abstract base class with `get_topics()`,
`get_questions(topics)`, `store_session(session)` and
`get_session(session_id)`. Implement it for your own backend.

## SQLite storage

`knowcheck.storage.SqlStorage(database, questions_limit=10)` opens or
creates an SQLite database at the given path, and `":memory:"` works too.
It creates the tables `topics`, `question_types`, `questions` and
`sessions` if they are missing. An empty path raises `InvalidParamError`,
and database failures raise `InternalError`. `questions_limit` is kept as
an attribute only; it does not change how many questions are picked. The
storage is a context manager: `close()` runs on exit, and calling it again
does nothing.

- `get_topics()` returns topic names in order of `topic_id`.
- `get_questions(topics)` picks up to two questions for each topic and
  question type. It prefers the least used questions and breaks ties at
  random, then increments their `usage_count`. The result is sorted by
  topic, then by type name.
- `store_session(session)` appends a row for the session's current state.
- `get_session(session_id)` rebuilds the session from its latest row. It
  raises `InternalError` if there is none.

In the `questions` table, `variants` and `correct_answers` are stored as
JSON arrays of strings. The answers of a completed session are stored with
`knowcheck.dto.UserAnswersListDTO`. Its `to_json()` and
`from_json(data)` use the form
`{"user_answer": [{"question_id": ..., "answers": [...]}]}`.

## Identifiers

`knowcheck.generator.TimeIDGenerator().generate_id()` returns the current
time in nanoseconds. To supply ids another way, subclass `IDGenerator`.

## What it does not do

The package is a library only. It has no command-line program and no
network server. `SqlStorage` has no functions for adding topics or
questions, so fill the `topics` and `questions` tables with SQL of your
own.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```