"""Tests for play-count debouncing."""

import threading

from riffstream.domain.plays.debounce import PlayDebouncer


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestPlayDebouncer:
    """Test the 30 second window and bounded map."""

    def test_second_call_within_window_rejected(self):
        clock = FakeClock()
        debouncer = PlayDebouncer(clock=clock)

        assert debouncer.should_count("t1", "u1")
        clock.now += 29.9
        assert not debouncer.should_count("t1", "u1")

    def test_counts_again_after_window(self):
        """Test that a call 31 simulated seconds later counts again."""
        clock = FakeClock()
        debouncer = PlayDebouncer(clock=clock)

        assert debouncer.should_count("t1", "u1")
        clock.now += 31
        assert debouncer.should_count("t1", "u1")

    def test_exactly_window_does_not_count(self):
        clock = FakeClock()
        debouncer = PlayDebouncer(window_seconds=30, clock=clock)

        debouncer.should_count("t1", "u1")
        clock.now += 30
        assert not debouncer.should_count("t1", "u1")
        clock.now += 0.5
        assert debouncer.should_count("t1", "u1")

    def test_rejected_call_does_not_extend_window(self):
        clock = FakeClock()
        debouncer = PlayDebouncer(clock=clock)

        debouncer.should_count("t1", "u1")
        clock.now += 20
        debouncer.should_count("t1", "u1")
        clock.now += 11
        assert debouncer.should_count("t1", "u1")

    def test_pairs_are_independent(self):
        debouncer = PlayDebouncer(clock=FakeClock())

        assert debouncer.should_count("t1", "u1")
        assert debouncer.should_count("t1", "u2")
        assert debouncer.should_count("t2", "u1")

    def test_prunes_old_entries_when_over_capacity(self):
        """Test that exceeding max_entries drops entries older than the prune age."""
        clock = FakeClock()
        debouncer = PlayDebouncer(max_entries=3, prune_age_seconds=60, clock=clock)

        debouncer.should_count("t1", "u")
        debouncer.should_count("t2", "u")
        clock.now += 61
        debouncer.should_count("t3", "u")
        assert len(debouncer) == 3

        debouncer.should_count("t4", "u")
        assert len(debouncer) == 2

    def test_recent_entries_survive_prune(self):
        clock = FakeClock()
        debouncer = PlayDebouncer(max_entries=2, prune_age_seconds=60, clock=clock)

        for track in ("t1", "t2", "t3"):
            debouncer.should_count(track, "u")

        assert len(debouncer) == 3
        assert not debouncer.should_count("t1", "u")

    def test_concurrent_claims_admit_one(self):
        """Test that racing requests for the same pair count once."""
        debouncer = PlayDebouncer()
        results = []
        barrier = threading.Barrier(8)

        def claim():
            barrier.wait()
            results.append(debouncer.should_count("t1", "u1"))

        threads = [threading.Thread(target=claim) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
