"""Knowledge-check sessions: questions by topic, timed answering, graded results and SQLite storage."""

__version__ = "0.1.0"

__all__ = ["dto", "errors", "generator", "questions", "service", "session", "storage"]