# src/pdfio.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from errors import RenderFailure
from playlist.models import DocumentHandle, FlatPage
from state.model import Viewport

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fit:
    scale: float
    css_width: float
    css_height: float
    raster_width: int
    raster_height: int


def fit_size(page_w: float, page_h: float, view_w: float, view_h: float, dpr: float = 1.0) -> Fit:
    """
    Uniform fit-inside: scale = min(view_w/page_w, view_h/page_h).
    CSS size is the unscaled fit, the bitmap is CSS size * device pixel ratio.
    """
    if page_w <= 0 or page_h <= 0:
        raise RenderFailure(f"page has no area ({page_w}x{page_h})")
    if view_w <= 0 or view_h <= 0:
        raise RenderFailure(f"viewport has no area ({view_w}x{view_h})")
    dpr = dpr if dpr > 0 else 1.0
    scale = min(view_w / page_w, view_h / page_h)
    css_w, css_h = page_w * scale, page_h * scale
    return Fit(
        scale=scale,
        css_width=css_w,
        css_height=css_h,
        raster_width=max(1, int(round(css_w * dpr))),
        raster_height=max(1, int(round(css_h * dpr))),
    )


@dataclass(frozen=True)
class Raster:
    """RGB888 pixels plus the logical size they should be painted at."""
    samples: bytes
    width: int
    height: int
    stride: int
    css_width: float
    css_height: float
    dpr: float = 1.0


class FitzDecoder:
    """
    PyMuPDF as an explicitly owned capability.
    PyMuPDF is not thread-safe, so every call goes through one lock.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._open = False
        self._docs: List[fitz.Document] = []

    # ------------- lifecycle -------------
    def open(self) -> None:
        with self._lock:
            self._open = True

    def close(self) -> None:
        with self._lock:
            for doc in self._docs:
                doc.close()
            self._docs = []
            self._open = False

    @property
    def live_documents(self) -> int:
        with self._lock:
            return len(self._docs)

    # ------------- decoding -------------
    def decode(self, data: bytes) -> fitz.Document:
        with self._lock:
            if not self._open:
                raise RuntimeError("decoder is not open")
            doc = fitz.open(stream=data, filetype="pdf")
            if doc.needs_pass:
                doc.close()
                raise ValueError("document is password protected")
            self._docs.append(doc)
            return doc

    def page_count(self, doc: fitz.Document) -> int:
        with self._lock:
            return doc.page_count

    def page_size(self, doc: fitz.Document, page_number: int) -> Tuple[float, float]:
        with self._lock:
            rect = doc.load_page(page_number - 1).rect  # points @ 72dpi
            return rect.width, rect.height

    def render_page(self, doc: fitz.Document, page_number: int, scale: float) -> Tuple[bytes, int, int, int]:
        with self._lock:
            page = doc.load_page(page_number - 1)
            pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            return bytes(pix.samples), pix.width, pix.height, pix.stride

    def release(self, doc: fitz.Document) -> None:
        with self._lock:
            if doc not in self._docs:
                return
            self._docs.remove(doc)
            doc.close()


@dataclass
class _RenderCache:
    # key: (document_index, page_number, raster_w, raster_h)
    images: Dict[Tuple[int, int, int, int], Raster] = field(default_factory=dict)
    order: list[Tuple[int, int, int, int]] = field(default_factory=list)
    capacity: int = 12

    def get(self, key):
        return self.images.get(key)

    def put(self, key, img: Raster):
        if key in self.images:
            # move to end
            self.order.remove(key)
            self.order.append(key)
            self.images[key] = img
            return
        self.images[key] = img
        self.order.append(key)
        while len(self.order) > self.capacity:
            k = self.order.pop(0)
            self.images.pop(k, None)


class PageRenderer:
    """
    Renders FlatPages of the loaded documents, fit inside the viewport at device DPR.
    - render(page, viewport): synchronous, raises RenderFailure
    - submit(page, viewport, token, done): on a worker thread; last request wins
    - close(): stop the worker
    """
    def __init__(self, decoder: Any, documents: Sequence[DocumentHandle],
                 cache_pages: int = 12, workers: int = 1):
        self.decoder = decoder
        self.documents = list(documents)
        self._cache = _RenderCache(capacity=cache_pages)
        self._lock = threading.Lock()
        self._latest = 0
        self._pool: Optional[ThreadPoolExecutor] = None
        self._workers = max(1, workers)

    # ------------- rendering -------------
    def render(self, page: FlatPage, viewport: Viewport) -> Raster:
        if not 0 <= page.document_index < len(self.documents):
            raise RenderFailure(f"no loaded document #{page.document_index}", page)
        handle = self.documents[page.document_index]
        if handle.released:
            raise RenderFailure(f"{handle.display_name} was released", page)

        try:
            w, h = self.decoder.page_size(handle.doc, page.page_number)
        except Exception as e:
            raise RenderFailure(f"cannot read page {page.page_number}: {e}", page) from e
        fit = fit_size(w, h, viewport.width, viewport.height, viewport.dpr)

        key = (page.document_index, page.page_number, fit.raster_width, fit.raster_height)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            samples, pw, ph, stride = self.decoder.render_page(handle.doc, page.page_number, fit.scale * viewport.dpr)
        except Exception as e:
            raise RenderFailure(f"cannot rasterise page {page.page_number}: {e}", page) from e

        img = Raster(samples=samples, width=pw, height=ph, stride=stride,
                     css_width=fit.css_width, css_height=fit.css_height, dpr=viewport.dpr)
        with self._lock:
            self._cache.put(key, img)
        return img

    def submit(self, page: FlatPage, viewport: Viewport, token: int,
               done: Callable[[int, object, object], None]) -> None:
        with self._lock:
            self._latest = max(self._latest, token)
            if self._pool is None:
                self._pool = ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="render")
            pool = self._pool
        pool.submit(self._run, page, viewport, token, done)

    def close(self) -> None:
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=True, cancel_futures=True)

    # ------------- internals -------------
    def _run(self, page: FlatPage, viewport: Viewport, token: int, done) -> None:
        with self._lock:
            superseded = token < self._latest
        if superseded:
            log.debug("Skipping superseded render (token %s)", token)
            return
        try:
            img = self.render(page, viewport)
        except RenderFailure as e:
            done(token, None, e)
            return
        except Exception as e:
            log.exception("Unexpected error rendering page %s of %s", page.page_number, page.display_name)
            done(token, None, RenderFailure(f"cannot render page {page.page_number}: {e}", page))
            return
        done(token, img, None)
