"""Tests for the bundled stream collectors."""

import unittest

from simple_process import LineCountCollector, LineListCollector, StringCollector, TailCollector


class TestStringCollector(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(StringCollector().result(), "")

    def test_each_line_followed_by_newline(self):
        collector = StringCollector()
        for line in ["a", "", "c"]:
            collector.accept(line)
        collector.stream_finished()

        self.assertEqual(collector.result(), "a\n\nc\n")

    def test_keeps_output_read_before_failure(self):
        collector = StringCollector()
        collector.accept("partial")
        collector.stream_read_failed(OSError("boom"))

        self.assertEqual(collector.result(), "partial\n")

    def test_result_is_idempotent(self):
        collector = StringCollector()
        collector.accept("x")

        self.assertEqual(collector.result(), collector.result())


class TestOtherCollectors(unittest.TestCase):
    def test_line_list(self):
        collector = LineListCollector()
        collector.accept("a")
        collector.accept("b")
        result = collector.result()
        result.append("modified")

        self.assertEqual(collector.result(), ["a", "b"])

    def test_line_count(self):
        collector = LineCountCollector()
        for _ in range(3):
            collector.accept("line")

        self.assertEqual(collector.result(), 3)

    def test_tail_keeps_last_lines(self):
        collector = TailCollector(2)
        for line in ["1", "2", "3", "4"]:
            collector.accept(line)

        self.assertEqual(collector.result(), "3\n4\n")
        self.assertEqual(collector.dropped, 2)

    def test_tail_requires_positive_bound(self):
        with self.assertRaises(ValueError):
            TailCollector(0)


if __name__ == "__main__":
    unittest.main()
