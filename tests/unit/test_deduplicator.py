from pathlib import Path

from ocrwatch.watcher.dedup import WatchDeduplicator


class TestWatchDeduplicator:
    def test_admits_new_path(self) -> None:
        dedup = WatchDeduplicator()
        admission = dedup.try_admit(Path("/watched/a.png"))
        assert admission is not None
        assert admission.path == "/watched/a.png"
        assert "/watched/a.png" in dedup
        assert len(dedup) == 1

    def test_rejects_path_in_flight(self) -> None:
        dedup = WatchDeduplicator()
        assert dedup.try_admit("/watched/a.png") is not None
        assert dedup.try_admit(Path("/watched/a.png")) is None

    def test_release_allows_readmission(self) -> None:
        dedup = WatchDeduplicator()
        admission = dedup.try_admit("/watched/a.png")
        assert admission is not None
        admission.release()
        assert admission.released
        assert dedup.try_admit("/watched/a.png") is not None

    def test_context_manager_releases_on_error(self) -> None:
        dedup = WatchDeduplicator()
        admission = dedup.try_admit("/watched/a.png")
        assert admission is not None
        try:
            with admission:
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert "/watched/a.png" not in dedup

    def test_release_is_idempotent(self) -> None:
        dedup = WatchDeduplicator()
        admission = dedup.try_admit("/watched/a.png")
        assert admission is not None
        admission.release()
        admission.release()
        assert len(dedup) == 0

    def test_stale_admission_does_not_evict_newer_one(self) -> None:
        dedup = WatchDeduplicator()
        first = dedup.try_admit("/watched/a.png")
        assert first is not None
        dedup.release("/watched/a.png")
        second = dedup.try_admit("/watched/a.png")
        assert second is not None

        first.release()

        assert "/watched/a.png" in dedup
        assert dedup.try_admit("/watched/a.png") is None

    def test_release_by_path(self) -> None:
        dedup = WatchDeduplicator()
        dedup.try_admit("/watched/a.png")
        dedup.release("/watched/a.png")
        dedup.release("/watched/never-admitted.png")
        assert len(dedup) == 0

    def test_clear_and_in_flight(self) -> None:
        dedup = WatchDeduplicator()
        dedup.try_admit("/watched/a.png")
        dedup.try_admit("/watched/b.png")
        assert dedup.in_flight == frozenset({"/watched/a.png", "/watched/b.png"})
        dedup.clear()
        assert dedup.in_flight == frozenset()
