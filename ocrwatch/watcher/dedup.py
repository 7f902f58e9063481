from pathlib import Path


class Admission:
    """An admitted path's slot in the in-flight set.

    Use as a context manager; leaving the block releases the slot. Releasing
    more than once is a no-op.
    """

    def __init__(self, deduplicator: "WatchDeduplicator", path: str) -> None:
        self._deduplicator = deduplicator
        self._path = path
        self._released = False

    @property
    def path(self) -> str:
        return self._path

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._deduplicator._release_admission(self)

    def __enter__(self) -> "Admission":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class WatchDeduplicator:
    """Tracks paths currently inside the pipeline so none is admitted twice."""

    def __init__(self) -> None:
        self._in_flight: dict[str, Admission] = {}

    def try_admit(self, path: str | Path) -> Admission | None:
        """Admit ``path`` or return None if it is already in flight."""
        key = str(path)
        if key in self._in_flight:
            return None
        admission = Admission(self, key)
        self._in_flight[key] = admission
        return admission

    def release(self, path: str | Path) -> None:
        """Forget ``path`` regardless of which admission holds it."""
        self._in_flight.pop(str(path), None)

    def clear(self) -> None:
        self._in_flight.clear()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    def __contains__(self, path: object) -> bool:
        return str(path) in self._in_flight

    def __len__(self) -> int:
        return len(self._in_flight)

    def _release_admission(self, admission: Admission) -> None:
        # A stale admission must not evict a newer one for the same path.
        if self._in_flight.get(admission.path) is admission:
            del self._in_flight[admission.path]
