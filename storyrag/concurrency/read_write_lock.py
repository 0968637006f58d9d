# storyrag/concurrency/read_write_lock.py
import threading
from contextlib import contextmanager


class ReadWriteLock:
    """
    Readers-writer lock guarding the in-memory record store.
    - Snapshot reads (get_all) run concurrently.
    - A replace of one entity's records is exclusive, so readers never see
      it half done.
    - Waiting writers block new readers so re-indexing is not starved.
    """
    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._can_read = threading.Condition(self._mutex)
        self._can_write = threading.Condition(self._mutex)
        self._active_readers = 0
        self._writing = False
        self._queued_writers = 0

    @contextmanager
    def read_lock(self):
        with self._mutex:
            while self._writing or self._queued_writers:
                self._can_read.wait()
            self._active_readers += 1
        try:
            yield
        finally:
            with self._mutex:
                self._active_readers -= 1
                if not self._active_readers:
                    self._can_write.notify()

    @contextmanager
    def write_lock(self):
        with self._mutex:
            self._queued_writers += 1
            try:
                while self._writing or self._active_readers:
                    self._can_write.wait()
            finally:
                self._queued_writers -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._mutex:
                self._writing = False
                if self._queued_writers:
                    self._can_write.notify()
                else:
                    self._can_read.notify_all()
