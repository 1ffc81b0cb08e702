import unittest
from datetime import datetime

from crimewatch.activity_log import ActivityLog


def _fixed_clock():
    return datetime(2024, 3, 1, 9, 5, 7)


class TestActivityLog(unittest.TestCase):
    def test_entries_are_timestamped_in_order(self):
        log = ActivityLog(clock=_fixed_clock)
        log.add("first")
        log.add("second")
        self.assertEqual(log.entries(), ["09:05:07: first", "09:05:07: second"])

    def test_history_is_bounded(self):
        log = ActivityLog(max_entries=3, clock=_fixed_clock)
        for i in range(5):
            log.add(f"m{i}")
        self.assertEqual([e.split(": ", 1)[1] for e in log.entries()], ["m2", "m3", "m4"])

    def test_limit_returns_newest(self):
        log = ActivityLog(clock=_fixed_clock)
        for i in range(4):
            log.add(f"m{i}")
        self.assertEqual(log.entries(limit=2), ["09:05:07: m2", "09:05:07: m3"])

    def test_subscribers_notified_synchronously(self):
        log = ActivityLog(clock=_fixed_clock)
        seen = []
        log.subscribe(seen.append)
        log.add("hello")
        self.assertEqual(seen, ["09:05:07: hello"])

        log.unsubscribe(seen.append)
        log.add("ignored")
        self.assertEqual(seen, ["09:05:07: hello"])

    def test_failing_subscriber_does_not_block_others(self):
        log = ActivityLog(clock=_fixed_clock)
        seen = []

        def broken(_entry):
            raise RuntimeError("nope")

        log.subscribe(broken)
        log.subscribe(seen.append)
        log.add("hello")
        self.assertEqual(seen, ["09:05:07: hello"])

    def test_clear_leaves_marker(self):
        log = ActivityLog(clock=_fixed_clock)
        log.add("something")
        log.clear()
        self.assertEqual(log.entries(), ["09:05:07: Logs cleared."])

    def test_usable_as_sink(self):
        log = ActivityLog(clock=_fixed_clock)
        log("via call")
        self.assertEqual(log.entries(), ["09:05:07: via call"])


if __name__ == "__main__":
    unittest.main()
