import os
import tempfile
import unittest

from dhakadispatch.pipeline.lock import SchedulerLock


class TestSchedulerLock(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = os.path.join(self.tmp.name, "state", "dispatch.lock")

    def test_second_instance_is_refused_and_sees_holder_pid(self):
        first = SchedulerLock(self.path)
        second = SchedulerLock(self.path)
        self.addCleanup(first.release)
        self.addCleanup(second.release)

        self.assertTrue(first.acquire())
        with self.assertLogs("dhakadispatch.pipeline.lock", level="WARNING") as logs:
            self.assertFalse(second.acquire())
        self.assertIn(f"PID: {os.getpid()}", logs.output[0])
        self.assertFalse(second.held)
        # a refused attempt must not wipe the holder's PID
        self.assertEqual(second.holder_pid(), os.getpid())

    def test_release_lets_the_next_instance_in(self):
        first = SchedulerLock(self.path)
        self.assertTrue(first.acquire())
        first.release()
        self.assertFalse(first.held)

        with SchedulerLock(self.path) as second:
            self.assertTrue(second.acquire())
            self.assertTrue(second.held)
        self.assertFalse(second.held)

    def test_holder_pid_without_lock_file(self):
        self.assertIsNone(SchedulerLock(self.path).holder_pid())


if __name__ == "__main__":
    unittest.main()
