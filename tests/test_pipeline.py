import threading
import time
from collections import Counter
from pathlib import Path

from changemonitor.actions import ActionFactory
from changemonitor.errors import FactoryError
from changemonitor.events import ChangeKind, ChangeRecord
from changemonitor.pipeline import ChangePipeline


class RecordingFactory(ActionFactory):
    """Returns actions that record which submission produced them."""

    def __init__(self):
        self.calls = 0
        self.executed = []
        self._lock = threading.Lock()

    def create_action(self, record):
        with self._lock:
            self.calls += 1
            token = (record.kind, str(record.path), self.calls)

        def action():
            with self._lock:
                self.executed.append(token)

        return action


def _modified(path="/a/f.txt"):
    return ChangeRecord(kind=ChangeKind.MODIFIED, path=Path(path))


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_duplicate_notifications_run_latest_action_once():
    factory = RecordingFactory()
    pipeline = ChangePipeline(factory, quiet_window=0.2)

    started = time.monotonic()
    assert pipeline.submit(_modified())
    assert pipeline.submit(_modified())

    assert factory.executed == []
    assert _wait_until(lambda: factory.executed)
    assert time.monotonic() - started >= 0.19
    time.sleep(0.3)

    assert factory.executed == [(ChangeKind.MODIFIED, "/a/f.txt", 2)]
    stats = pipeline.stats()
    assert stats.submitted == 2
    assert stats.superseded == 1


def test_deletion_supersedes_pending_modification_of_same_path():
    factory = RecordingFactory()
    pipeline = ChangePipeline(factory, quiet_window=10)

    pipeline.submit(_modified())
    pipeline.submit(ChangeRecord(kind=ChangeKind.DELETED, path=Path("/a/f.txt")))
    pipeline.scheduler.flush()

    assert factory.executed == [(ChangeKind.DELETED, "/a/f.txt", 2)]


def test_deletion_leaves_other_paths_and_renames_pending():
    executed = []

    def factory(record):
        return lambda: executed.append((record.kind, str(record.path)))

    pipeline = ChangePipeline(factory, quiet_window=10)
    pipeline.submit(_modified("/a/other.txt"))
    pipeline.submit(
        ChangeRecord(kind=ChangeKind.RENAMED, path=Path("/a/f.txt"), previous_path=Path("/a/g.txt"))
    )
    pipeline.submit(ChangeRecord(kind=ChangeKind.DELETED, path=Path("/a/f.txt")))
    pipeline.scheduler.flush()

    assert Counter(executed) == Counter(
        {
            (ChangeKind.MODIFIED, "/a/other.txt"): 1,
            (ChangeKind.RENAMED, "/a/f.txt"): 1,
            (ChangeKind.DELETED, "/a/f.txt"): 1,
        }
    )


def test_modification_after_deletion_is_kept():
    executed = []

    def factory(record):
        return lambda: executed.append(record.kind)

    pipeline = ChangePipeline(factory, quiet_window=10)
    pipeline.submit(ChangeRecord(kind=ChangeKind.DELETED, path=Path("/a/f.txt")))
    pipeline.submit(ChangeRecord(kind=ChangeKind.CREATED, path=Path("/a/f.txt")))
    pipeline.scheduler.flush()

    assert sorted(kind.value for kind in executed) == ["created", "deleted"]


def test_factory_failure_is_reported_and_dropped():
    failures = []
    boom = KeyError("missing")

    def factory(record):
        raise boom

    pipeline = ChangePipeline(factory, quiet_window=10)
    pipeline.reporter.register(failures.append)

    assert pipeline.submit(_modified()) is False

    assert len(failures) == 1
    assert isinstance(failures[0], FactoryError)
    assert failures[0].original is boom
    assert failures[0].record == _modified()
    assert len(pipeline.store) == 0
    assert not pipeline.scheduler.pending
    assert pipeline.stats().factory_failures == 1


def test_none_action_ignores_the_change():
    pipeline = ChangePipeline(lambda record: None, quiet_window=10)

    assert pipeline.submit(_modified()) is False

    assert len(pipeline.store) == 0
    assert not pipeline.scheduler.pending
    assert pipeline.stats().ignored == 1


def test_concurrent_submissions_each_run_exactly_once():
    executed = Counter()
    lock = threading.Lock()

    def factory(record):
        def action():
            with lock:
                executed[str(record.path)] += 1

        return action

    pipeline = ChangePipeline(factory, quiet_window=0.01)
    barrier = threading.Barrier(6)

    def submitter(index):
        barrier.wait()
        for n in range(100):
            pipeline.submit(_modified(f"/t{index}/f{n}"))
            if n % 10 == 0:
                time.sleep(0.005)

    threads = [threading.Thread(target=submitter, args=(i,)) for i in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert _wait_until(lambda: sum(executed.values()) >= 600)
    time.sleep(0.1)

    assert len(executed) == 600
    assert set(executed.values()) == {1}


def test_submissions_after_close_are_rejected():
    executed = []
    pipeline = ChangePipeline(lambda record: (lambda: executed.append(record)), quiet_window=10)
    pipeline.scheduler.close()

    assert pipeline.submit(_modified()) is False

    assert len(pipeline.store) == 0
    assert pipeline.scheduler.flush() == 0
    assert executed == []
    assert pipeline.stats().rejected == 1
