"""Tests for the fan-out consumer, the close latch and the stream logger."""

import logging
import threading
import unittest

from simple_process import ProcessInterruptedError, StreamCloseTimeoutError
from simple_process.stream_consumer import DelegatingConsumer, StreamCloseWaiter, StreamLogger


class OrderRecorder:
    def __init__(self, name: str, calls: list[str]) -> None:
        self._name = name
        self._calls = calls

    def accept(self, line: str) -> None:
        self._calls.append(f"{self._name}:accept:{line}")

    def stream_finished(self) -> None:
        self._calls.append(f"{self._name}:finished")

    def stream_read_failed(self, exception: Exception) -> None:
        self._calls.append(f"{self._name}:failed:{exception}")


class TestDelegatingConsumer(unittest.TestCase):
    """Test events are fanned out in list order."""

    def test_events_delivered_in_order(self):
        calls: list[str] = []
        consumer = DelegatingConsumer([OrderRecorder("a", calls), OrderRecorder("b", calls)])

        consumer.accept("x")
        consumer.stream_finished()

        self.assertEqual(calls, ["a:accept:x", "b:accept:x", "a:finished", "b:finished"])

    def test_failure_delivered_to_all(self):
        calls: list[str] = []
        consumer = DelegatingConsumer([OrderRecorder("a", calls), OrderRecorder("b", calls)])

        consumer.stream_read_failed(OSError("boom"))

        self.assertEqual(calls, ["a:failed:boom", "b:failed:boom"])


class TestStreamCloseWaiter(unittest.TestCase):
    """Test the one-shot close latch."""

    def test_closes_on_finished(self):
        waiter = StreamCloseWaiter("stdout", 1, 1.0)
        self.assertFalse(waiter.closed)

        waiter.stream_finished()

        self.assertTrue(waiter.closed)
        self.assertTrue(waiter.await_closed(0))
        waiter.wait_until_stream_closed()

    def test_closes_on_read_failure(self):
        waiter = StreamCloseWaiter("stdout", 1, 1.0)
        waiter.stream_read_failed(OSError("boom"))

        self.assertTrue(waiter.closed)

    def test_lines_do_not_close(self):
        waiter = StreamCloseWaiter("stdout", 1, 1.0)
        waiter.accept("line")

        self.assertFalse(waiter.await_closed(0.01))

    def test_timeout(self):
        waiter = StreamCloseWaiter("stderr", 1234, 0.05)
        with self.assertRaises(StreamCloseTimeoutError) as cm:
            waiter.wait_until_stream_closed()

        self.assertEqual(str(cm.exception), "Stream 'stderr' of process 1234 not closed within timeout of 0.05s")
        self.assertIsInstance(cm.exception, TimeoutError)

    def test_closed_from_other_thread(self):
        waiter = StreamCloseWaiter("stdout", 1, 5.0)
        timer = threading.Timer(0.05, waiter.stream_finished)
        timer.start()

        waiter.wait_until_stream_closed()

        self.assertTrue(waiter.closed)
        timer.join()

    def test_interrupted_wait(self):
        waiter = StreamCloseWaiter("stdout", 99, 5.0)

        def interrupted_wait(timeout):
            raise KeyboardInterrupt

        waiter.await_closed = interrupted_wait
        with self.assertRaises(ProcessInterruptedError) as cm:
            waiter.wait_until_stream_closed()

        self.assertIn("stream 'stdout' of process 99", str(cm.exception))
        self.assertIsInstance(cm.exception.__cause__, KeyboardInterrupt)


class TestStreamLogger(unittest.TestCase):
    """Test lines are echoed to the log."""

    def test_line_logged_at_configured_level(self):
        stream_logger = StreamLogger(123, "stdout", logging.INFO)
        with self.assertLogs("simple_process.stream_consumer", level="INFO") as cm:
            stream_logger.accept("hello")

        self.assertEqual(cm.records[0].getMessage(), "123:stdout> hello")
        self.assertEqual(cm.records[0].levelno, logging.INFO)

    def test_default_level_is_debug(self):
        stream_logger = StreamLogger(5, "stderr")
        with self.assertLogs("simple_process.stream_consumer", level="DEBUG") as cm:
            stream_logger.accept("oops")

        self.assertEqual(cm.records[0].levelno, logging.DEBUG)
        self.assertEqual(cm.records[0].getMessage(), "5:stderr> oops")


if __name__ == "__main__":
    unittest.main()
