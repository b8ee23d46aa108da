from concurrent.futures import ThreadPoolExecutor
import threading

from exam_app.core.services.attempt_tracker import AttemptTracker


def test_counts_are_per_exam_and_student():
    tracker = AttemptTracker()
    tracker.register_attempt("exam-1", "alice")
    tracker.register_attempt("exam-1", "alice")
    tracker.register_attempt("exam-2", "alice")
    assert tracker.attempts_used("exam-1", "alice") == 2
    assert tracker.attempts_used("exam-2", "alice") == 1
    assert tracker.attempts_used("exam-1", "bob") == 0

    tracker.reset("exam-1")
    assert tracker.attempts_used("exam-1", "alice") == 0
    assert tracker.attempts_used("exam-2", "alice") == 1


def test_serialized_check_and_register_never_exceeds_limit():
    tracker = AttemptTracker()
    limit = 1
    barrier = threading.Barrier(8)

    def start_attempt(_):
        barrier.wait()

        def action(used):
            if used >= limit:
                return False
            tracker.register_attempt("exam-1", "alice")
            return True

        return tracker.run_serialized("exam-1", "alice", action)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(start_attempt, range(8)))

    assert results.count(True) == 1
    assert tracker.attempts_used("exam-1", "alice") == 1
