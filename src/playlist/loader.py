from __future__ import annotations
import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, wait
from typing import Dict, List, Sequence, Set

from errors import DocumentLoadFailure, FetchError
from .models import DocumentHandle, LoadResult, PlaylistEntry
from .protocol import DecoderProtocol, Fetcher

log = logging.getLogger(__name__)


class DocumentLoader:
    """
    Fetch + decode every playlist entry concurrently (at most `workers` at a
    time), then join. Each entry gets `timeout` seconds from the moment it starts.

    - A failing entry is logged and left out; it never aborts the others.
    - The result keeps playlist order regardless of completion order.
    - Every decoded document stays owned here until release_all().
    """
    def __init__(self, fetcher: Fetcher, decoder: DecoderProtocol, workers: int = 4, timeout: float = 30.0):
        if workers < 1:
            raise ValueError("loader needs at least one worker")
        self.fetcher = fetcher
        self.decoder = decoder
        self.workers = workers
        self.timeout = timeout
        self._owned: List[DocumentHandle] = []
        self._lock = threading.Lock()

    # ------------- lifecycle -------------
    def load(self, entries: Sequence[PlaylistEntry]) -> LoadResult:
        result = LoadResult()
        if not entries:
            return result

        futures: List[Future] = [Future() for _ in entries]
        started: Dict[int, float] = {}
        timed_out: Set[int] = set()
        running: Set[int] = set()
        next_i = 0

        # A slot frees up when its load finishes or runs out of time.
        while next_i < len(entries) or running:
            while next_i < len(entries) and len(running) < self.workers:
                self._start(entries[next_i], futures[next_i], next_i)
                started[next_i] = time.monotonic()
                running.add(next_i)
                next_i += 1

            deadline = min(started[i] for i in running) + self.timeout
            wait([futures[i] for i in running],
                 timeout=max(0.0, deadline - time.monotonic()),
                 return_when=FIRST_COMPLETED)

            now = time.monotonic()
            for i in sorted(running):
                if futures[i].done():
                    running.discard(i)
                elif now - started[i] >= self.timeout:
                    running.discard(i)
                    timed_out.add(i)
                    futures[i].add_done_callback(self._release_late)

        for i, (entry, fut) in enumerate(zip(entries, futures)):
            if i in timed_out:
                err = DocumentLoadFailure(entry, f"timed out after {self.timeout:g}s")
            else:
                exc = fut.exception()
                if exc is None:
                    result.documents.append(fut.result())
                    continue
                err = exc if isinstance(exc, DocumentLoadFailure) else DocumentLoadFailure(entry, str(exc))
            log.error("Failed to load PDF: %s", err)
            result.failures.append((entry, err))

        log.info(
            "Loaded %d/%d documents (%d pages)",
            len(result.documents), len(entries), result.page_total,
        )
        return result

    def release_all(self) -> None:
        with self._lock:
            owned, self._owned = self._owned, []
        for handle in owned:
            self._release(handle)

    @property
    def owned_count(self) -> int:
        with self._lock:
            return len(self._owned)

    # ------------- internals -------------
    def _start(self, entry: PlaylistEntry, fut: Future, position: int) -> None:
        def _run():
            if not fut.set_running_or_notify_cancel():
                return
            try:
                fut.set_result(self._load_one(entry))
            except Exception as e:
                fut.set_exception(e)

        # daemon: a fetch that never returns must not keep the process alive
        threading.Thread(target=_run, name=f"doc-load-{position}", daemon=True).start()

    def _load_one(self, entry: PlaylistEntry) -> DocumentHandle:
        try:
            data = self.fetcher.fetch(entry.source_location, self.timeout)
        except FetchError as e:
            raise DocumentLoadFailure(entry, str(e)) from e

        try:
            doc = self.decoder.decode(data)
        except Exception as e:
            raise DocumentLoadFailure(entry, f"malformed document ({e})") from e

        handle = DocumentHandle(entry=entry, page_count=0, doc=doc)
        try:
            handle.page_count = int(self.decoder.page_count(doc))
        except Exception as e:
            self._release(handle)
            raise DocumentLoadFailure(entry, f"unreadable page count ({e})") from e
        if handle.page_count <= 0:
            self._release(handle)
            raise DocumentLoadFailure(entry, "document has no pages")

        with self._lock:
            self._owned.append(handle)
        return handle

    def _release_late(self, fut: Future) -> None:
        # Loads that finish after their timeout were never handed out.
        if fut.cancelled() or fut.exception() is not None:
            return
        handle = fut.result()
        with self._lock:
            if handle in self._owned:
                self._owned.remove(handle)
        self._release(handle)

    def _release(self, handle: DocumentHandle) -> None:
        if handle.released:
            return
        handle.released = True
        try:
            self.decoder.release(handle.doc)
        except Exception:
            log.warning("Releasing %s failed", handle.display_name, exc_info=True)
