import sys
import threading
from pathlib import Path
import pytest

# Make "src" importable
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import fitz  # PyMuPDF

from errors import FetchError
from playlist import FlatPage, PlaylistEntry, DocumentHandle
from state import PlaybackStore


def make_pdf(path: Path, sizes) -> Path:
    """Write a PDF with one page per (width, height) in points."""
    doc = fitz.open()
    for i, (w, h) in enumerate(sizes):
        page = doc.new_page(width=w, height=h)
        page.insert_text((20, 40), f"page {i + 1}")
    doc.save(str(path))
    doc.close()
    return path


def pages_for(*counts):
    """FlatPages for documents with the given page counts, named doc0, doc1, ..."""
    out = []
    for d, n in enumerate(counts):
        for p in range(1, n + 1):
            out.append(FlatPage(document_index=d, page_number=p, page_count=n, display_name=f"doc{d}"))
    return tuple(out)


class ManualTimer:
    """TimerProtocol stand-in: fire() plays the role of the clock."""
    def __init__(self):
        self.interval = None
        self.callback = None
        self.starts = 0
        self.stops = 0

    def start(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.starts += 1

    def stop(self):
        self.callback = None
        self.stops += 1

    @property
    def active(self):
        return self.callback is not None

    def fire(self, times=1):
        for _ in range(times):
            assert self.callback is not None, "timer is not running"
            self.callback()


class RecordingRenderer:
    """Keeps render requests; the test decides when and how each completes."""
    def __init__(self):
        self.requests = []  # (page, viewport, token, done)

    def submit(self, page, viewport, token, done):
        self.requests.append((page, viewport, token, done))

    @property
    def last(self):
        return self.requests[-1]

    def complete(self, i=-1, image="img", error=None):
        page, viewport, token, done = self.requests[i]
        done(token, image if error is None else None, error)
        return token


class FakeDecoder:
    """
    DecoderProtocol over byte strings: b"pages:N" decodes to N pages,
    anything else is malformed.
    """
    def __init__(self):
        self.opened = False
        self.live = []
        self.released = []
        self._lock = threading.Lock()

    def open(self):
        self.opened = True

    def close(self):
        self.opened = False
        self.live.clear()

    def decode(self, data):
        if not data.startswith(b"pages:"):
            raise ValueError("not a pdf")
        doc = {"pages": int(data.split(b":")[1])}
        with self._lock:
            self.live.append(doc)
        return doc

    def page_count(self, doc):
        return doc["pages"]

    def page_size(self, doc, page_number):
        return 612.0, 792.0

    def render_page(self, doc, page_number, scale):
        w, h = int(612 * scale), int(792 * scale)
        return b"\x00" * (w * h * 3), w, h, w * 3

    def release(self, doc):
        with self._lock:
            if doc in self.live:
                self.live.remove(doc)
        self.released.append(doc)


class DictFetcher:
    """Fetcher backed by a dict; missing keys are not-found, Exception values are raised."""
    def __init__(self, blobs):
        self.blobs = dict(blobs)
        self.calls = []
        self.closed = False

    def fetch(self, location, timeout=30.0):
        self.calls.append(location)
        if location not in self.blobs:
            raise FetchError(location, FetchError.NOT_FOUND)
        value = self.blobs[location]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value()
        return value

    def close(self):
        self.closed = True


def entry(name, location=None, order=0):
    return PlaylistEntry(document_id=name, display_name=name,
                         source_location=location or name, sort_order=order)


def handle(name, pages):
    return DocumentHandle(entry=entry(name), page_count=pages)


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def idle_timer():
    return ManualTimer()


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def store(renderer, timer, idle_timer):
    # Fresh store per test
    return PlaybackStore(renderer=renderer, timer=timer, idle_timer=idle_timer)


@pytest.fixture
def decoder():
    return FakeDecoder()
