from __future__ import annotations

import threading
import unittest

from repolyzer.progress import ANALYSIS_STAGES, ProgressTracker, comparison_stages


class ProgressTrackerTest(unittest.TestCase):
    def test_first_stage_active_on_start(self) -> None:
        tracker = ProgressTracker(ANALYSIS_STAGES)
        stages = tracker.get_all_stages()
        self.assertEqual([s.name for s in stages], list(ANALYSIS_STAGES))
        self.assertTrue(stages[0].is_active)
        self.assertFalse(any(s.is_complete for s in stages))

    def test_next_stage_advances_cursor(self) -> None:
        tracker = ProgressTracker(ANALYSIS_STAGES)
        tracker.next_stage()
        tracker.next_stage()
        stages = tracker.get_all_stages()
        self.assertEqual([s.is_complete for s in stages], [True, True, False, False, False])
        self.assertEqual([s.is_active for s in stages], [False, False, True, False, False])

    def test_cursor_clamps_past_last_stage(self) -> None:
        tracker = ProgressTracker(("a", "b"))
        for _ in range(10):
            tracker.next_stage()
        self.assertEqual(tracker.current, 2)
        self.assertTrue(tracker.done)
        stages = tracker.get_all_stages()
        self.assertTrue(all(s.is_complete for s in stages))
        self.assertFalse(any(s.is_active for s in stages))

    def test_at_most_one_active_stage(self) -> None:
        tracker = ProgressTracker(ANALYSIS_STAGES)
        for _ in range(len(ANALYSIS_STAGES) + 1):
            self.assertLessEqual(sum(s.is_active for s in tracker.get_all_stages()), 1)
            tracker.next_stage()

    def test_concurrent_advances_clamp(self) -> None:
        tracker = ProgressTracker(ANALYSIS_STAGES)
        threads = [threading.Thread(target=lambda: [tracker.next_stage() for _ in range(50)]) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(tracker.current, len(ANALYSIS_STAGES))

    def test_elapsed_time_grows(self) -> None:
        tracker = ProgressTracker(ANALYSIS_STAGES)
        first = tracker.get_elapsed_time()
        self.assertGreaterEqual(first, 0.0)
        self.assertGreaterEqual(tracker.get_elapsed_time(), first)

    def test_comparison_stage_names(self) -> None:
        self.assertEqual(
            comparison_stages("a/b", "c/d"),
            ("Fetching a/b", "Fetching c/d", "Computing metrics"),
        )
