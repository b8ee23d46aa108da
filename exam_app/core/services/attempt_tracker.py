"""Server-side attempt counting per (exam, student)."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from threading import Lock
from typing import TypeVar

T = TypeVar("T")

AttemptKey = tuple[str, str]


class AttemptTracker:
    """Counts started attempts and serializes check-then-register per key.

    Two concurrent requests for the same exam and student must not both read
    a count below the limit, so the gate check and the increment run under
    one per-key lock.
    """

    def __init__(self) -> None:
        self._counts: dict[AttemptKey, int] = defaultdict(int)
        self._key_locks: dict[AttemptKey, Lock] = {}
        self._guard = Lock()

    def attempts_used(self, exam_id: str, student_id: str) -> int:
        with self._guard:
            return self._counts.get((exam_id, student_id), 0)

    def register_attempt(self, exam_id: str, student_id: str) -> int:
        with self._guard:
            self._counts[(exam_id, student_id)] += 1
            return self._counts[(exam_id, student_id)]

    @contextmanager
    def serialized(self, exam_id: str, student_id: str) -> Iterator[None]:
        with self._lock_for((exam_id, student_id)):
            yield

    def run_serialized(self, exam_id: str, student_id: str, action: Callable[[int], T]) -> T:
        """Run ``action(attempts_used)`` while holding the key's lock."""
        with self.serialized(exam_id, student_id):
            return action(self.attempts_used(exam_id, student_id))

    def reset(self, exam_id: str | None = None) -> None:
        with self._guard:
            if exam_id is None:
                self._counts.clear()
                self._key_locks.clear()
                return
            for key in [key for key in self._counts if key[0] == exam_id]:
                del self._counts[key]
            for key in [key for key in self._key_locks if key[0] == exam_id]:
                del self._key_locks[key]

    def _lock_for(self, key: AttemptKey) -> Lock:
        with self._guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = Lock()
                self._key_locks[key] = lock
            return lock
