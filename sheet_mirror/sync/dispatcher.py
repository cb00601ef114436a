"""Background dispatch of sync requests off the caller's write path."""
from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass
import logging
import queue
import threading
from typing import Deque, Dict, List, Optional, Tuple

from .service import SyncRequest, SyncService

logger = logging.getLogger(__name__)

LaneKey = Tuple[str, str]


@dataclass(slots=True)
class DispatcherStats:
    submitted: int = 0
    completed: int = 0
    failed: int = 0
    dropped: int = 0


class SyncDispatcher:
    """Run sync requests on worker threads with a bounded backlog.

    Requests sharing a ``(table, key)`` lane run one at a time in submission
    order; different lanes run in parallel. ``submit`` never blocks: when
    ``max_queue`` requests are already pending the request is dropped and
    ``False`` is returned. Requests submitted after ``stop`` are dropped the
    same way. Failed requests are counted and logged, never retried.
    """

    def __init__(
        self,
        service: SyncService,
        *,
        workers: int = 2,
        max_queue: int = 1000,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if max_queue < 1:
            raise ValueError("max_queue must be >= 1")
        self.service = service
        self.workers = workers
        self.max_queue = max_queue
        self._ready: "queue.Queue[Optional[LaneKey]]" = queue.Queue()
        self._lanes: Dict[LaneKey, Deque[SyncRequest]] = {}
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._pending = 0
        self._stats = DispatcherStats()
        self._threads: List[threading.Thread] = []
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._threads:
            return
        with self._lock:
            self._stopped = False
        for index in range(self.workers):
            thread = threading.Thread(
                target=self._run,
                name=f"sheet-mirror-sync-{index}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info("[DISPATCH] Started %s worker(s), queue bound %s", self.workers, self.max_queue)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the workers after the requests already queued have run."""

        with self._lock:
            self._stopped = True
        threads, self._threads = self._threads, []
        for _ in threads:
            self._ready.put(None)
        for thread in threads:
            thread.join(timeout=timeout)
        if threads:
            logger.info("[DISPATCH] Stopped")

    @property
    def running(self) -> bool:
        return bool(self._threads)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def submit(self, request: SyncRequest) -> bool:
        lane_key = (str(request.table or ""), request.key)
        with self._lock:
            if self._stopped:
                self._stats.dropped += 1
                logger.warning(
                    "[DISPATCH] Dispatcher stopped, dropping %s %s key=%s",
                    request.action,
                    request.table,
                    request.key or "-",
                )
                return False
            if self._pending >= self.max_queue:
                self._stats.dropped += 1
                logger.warning(
                    "[DISPATCH] Queue full (%s pending), dropping %s %s key=%s",
                    self._pending,
                    request.action,
                    request.table,
                    request.key or "-",
                )
                return False
            self._pending += 1
            self._stats.submitted += 1

            lane = self._lanes.get(lane_key)
            if lane is not None:
                lane.append(request)
                return True
            self._lanes[lane_key] = deque([request])

        self._ready.put(lane_key)
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until every submitted request has run. Returns False on timeout."""

        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            snapshot = asdict(self._stats)
            snapshot["pending"] = self._pending
        return snapshot

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run(self) -> None:
        while True:
            lane_key = self._ready.get()
            try:
                if lane_key is None:
                    return
                self._drain_lane(lane_key)
            finally:
                self._ready.task_done()

    def _drain_lane(self, lane_key: LaneKey) -> None:
        # The request being processed stays at the head of its lane so that
        # concurrent submits for the same key queue behind it.
        while True:
            with self._lock:
                lane = self._lanes[lane_key]
                if not lane:
                    del self._lanes[lane_key]
                    return
                request = lane[0]

            self._execute(request)

            with self._lock:
                lane.popleft()
                self._pending -= 1
                if self._pending == 0:
                    self._idle.notify_all()

    def _execute(self, request: SyncRequest) -> None:
        try:
            result = self.service.sync(request)
        except Exception:  # pragma: no cover - unexpected failure guard
            logger.exception(
                "[DISPATCH] Unexpected failure syncing %s %s key=%s",
                request.action,
                request.table,
                request.key or "-",
            )
            succeeded = False
        else:
            succeeded = result.success
            if not succeeded:
                logger.warning(
                    "[DISPATCH] Sync failed for %s %s key=%s: %s",
                    request.action,
                    request.table,
                    request.key or "-",
                    result.error,
                )

        with self._lock:
            if succeeded:
                self._stats.completed += 1
            else:
                self._stats.failed += 1


__all__ = ["DispatcherStats", "SyncDispatcher"]
