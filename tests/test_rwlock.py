import threading

import pytest

from stopwatch.rwlock import ReadWriteLock


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=5)

    def reader():
        with lock.read_locked():
            # all three readers must be inside at once to pass the barrier
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert not inside.broken


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    read_done = threading.Event()

    def reader():
        with lock.read_locked():
            read_done.set()

    with lock.write_locked():
        t = threading.Thread(target=reader)
        t.start()
        assert not read_done.wait(timeout=0.1)
    assert read_done.wait(timeout=5)
    t.join(timeout=5)


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    lock.acquire_read()
    writer_in = threading.Event()
    late_reader_in = threading.Event()

    def writer():
        with lock.write_locked():
            writer_in.set()

    def late_reader():
        with lock.read_locked():
            late_reader_in.set()

    w = threading.Thread(target=writer)
    w.start()
    # let the writer start waiting before the late reader arrives
    for _ in range(100):
        if lock._writers_waiting:
            break
        threading.Event().wait(0.01)
    r = threading.Thread(target=late_reader)
    r.start()
    assert not late_reader_in.wait(timeout=0.1)
    assert not writer_in.is_set()

    lock.release_read()
    assert writer_in.wait(timeout=5)
    assert late_reader_in.wait(timeout=5)
    w.join(timeout=5)
    r.join(timeout=5)


def test_lock_released_on_exception():
    lock = ReadWriteLock()
    with pytest.raises(RuntimeError):
        with lock.write_locked():
            raise RuntimeError("boom")
    with pytest.raises(RuntimeError):
        with lock.read_locked():
            raise RuntimeError("boom")

    acquired = threading.Event()

    def writer():
        with lock.write_locked():
            acquired.set()

    t = threading.Thread(target=writer)
    t.start()
    assert acquired.wait(timeout=5)
    t.join(timeout=5)
