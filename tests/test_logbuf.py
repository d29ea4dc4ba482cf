import io
import logging

from aprsgate.logbuf import LogBuffer


def messages(lines):
    return [line.message for line in lines]


def test_write_stores_line_without_trailing_newline():
    buf = LogBuffer(10)
    data = "rf: connected\n"
    assert buf.write(data) == len(data)
    assert messages(buf.snapshot()) == ["rf: connected"]


def test_multi_line_write_splits_entries():
    buf = LogBuffer(10)
    buf.write("first\nsecond\n\nthird\n")
    assert messages(buf.snapshot()) == ["first", "second", "third"]


def test_log_timestamp_prefix_is_stripped():
    buf = LogBuffer(10)
    buf.write("2026/01/01 12:34:56 rf: session ended\n")
    assert messages(buf.snapshot()) == ["rf: session ended"]


def test_non_timestamp_prefix_is_kept():
    buf = LogBuffer(10)
    buf.write("plain message without any timestamp\n")
    assert messages(buf.snapshot()) == ["plain message without any timestamp"]


def test_bytes_are_accepted():
    buf = LogBuffer(10)
    buf.write(b"from bytes\n")
    assert messages(buf.snapshot()) == ["from bytes"]


def test_capacity_evicts_oldest():
    buf = LogBuffer(3)
    for i in range(5):
        buf.write(f"line {i}\n")
    assert messages(buf.snapshot()) == ["line 2", "line 3", "line 4"]


def test_non_positive_capacity_uses_default():
    assert LogBuffer(0).capacity == LogBuffer().capacity
    assert LogBuffer(-4).capacity == LogBuffer().capacity


def test_recent_is_newest_first_and_bounded():
    buf = LogBuffer(10)
    for name in ["a", "b", "c", "d"]:
        buf.write(name + "\n")
    assert messages(buf.recent(2)) == ["d", "c"]
    assert messages(buf.recent(100)) == ["d", "c", "b", "a"]
    assert buf.recent(0) == []


def test_snapshot_is_a_copy():
    buf = LogBuffer(10)
    buf.write("x\n")
    snap = buf.snapshot()
    snap.clear()
    assert messages(buf.snapshot()) == ["x"]


def test_tee_writes_to_both():
    buf = LogBuffer(10)
    other = io.StringIO()
    writer = buf.tee(other)
    writer.write("hello there\n")
    assert other.getvalue() == "hello there\n"
    assert messages(buf.snapshot()) == ["hello there"]


def test_works_as_logging_stream():
    buf = LogBuffer(10)
    logger = logging.getLogger("aprsgate.test.logbuf")
    logger.propagate = False
    handler = logging.StreamHandler(buf)
    logger.addHandler(handler)
    try:
        logger.warning("beacon sent")
    finally:
        logger.removeHandler(handler)
    assert messages(buf.snapshot()) == ["beacon sent"]