"""Service holding the instructor's prepared check-in questions."""

from __future__ import annotations

from collections import deque
from threading import Lock


class QuestionQueue:
    """FIFO of questions the auto-question timer draws from."""

    def __init__(self, questions: list[str] | None = None) -> None:
        self._lock = Lock()
        self._questions: deque[str] = deque()
        for question in questions or []:
            self.enqueue(question)

    def enqueue(self, question: str) -> int:
        """Add a question to the end of the queue and return the new length."""
        cleaned = question.strip()
        if not cleaned:
            raise ValueError("Question text must not be empty.")
        with self._lock:
            self._questions.append(cleaned)
            return len(self._questions)

    def next_question(self) -> str | None:
        """Pop the oldest question, or ``None`` when the queue is empty."""
        with self._lock:
            if not self._questions:
                return None
            return self._questions.popleft()

    def peek(self) -> str | None:
        with self._lock:
            return self._questions[0] if self._questions else None

    def remove(self, index: int) -> str:
        with self._lock:
            if not 0 <= index < len(self._questions):
                raise IndexError(f"Question index {index} out of range")
            question = self._questions[index]
            del self._questions[index]
            return question

    def get_questions(self) -> list[str]:
        with self._lock:
            return list(self._questions)

    def clear(self) -> None:
        with self._lock:
            self._questions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._questions)
