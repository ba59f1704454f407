# src/ui.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from PySide6 import QtCore, QtGui, QtWidgets
from PySide6.QtCore import Qt

from errors import ScreenNotFound
from gestures import SwipeTracker, command_for_key
from pdfio import Raster
from session import PlayerSession
from state import (
    Command, PlaybackState, Phase, Viewport, ViewportResized, PointerActivity,
)

log = logging.getLogger(__name__)

_QT_KEYS = {
    Qt.Key_Right: "ArrowRight",
    Qt.Key_Space: "Space",
    Qt.Key_Left: "ArrowLeft",
}


# -------------------------
# Qt-backed ports
# -------------------------

class QtTimer:
    """TimerProtocol on top of QTimer. start() re-arms, so a pending tick never leaks through."""
    def __init__(self, parent: QtCore.QObject, single_shot: bool = False):
        self._timer = QtCore.QTimer(parent)
        self._timer.setSingleShot(single_shot)
        self._callback: Optional[Callable[[], None]] = None
        self._timer.timeout.connect(self._fire)

    def start(self, interval: float, callback: Callable[[], None]) -> None:
        self._timer.stop()
        self._callback = callback
        self._timer.start(max(1, int(interval * 1000)))

    def stop(self) -> None:
        self._timer.stop()

    @property
    def active(self) -> bool:
        return self._timer.isActive()

    def _fire(self) -> None:
        if self._callback is not None:
            self._callback()


class _Bridge(QtCore.QObject):
    """Hops worker-thread results onto the GUI thread (queued connections)."""
    command = QtCore.Signal(object)
    loaded = QtCore.Signal()
    failed = QtCore.Signal(object)


def raster_to_qimage(raster: Raster) -> QtGui.QImage:
    img = QtGui.QImage(raster.samples, raster.width, raster.height, raster.stride,
                       QtGui.QImage.Format_RGB888)
    img.setDevicePixelRatio(raster.dpr)
    return img.copy()  # detach from the samples buffer


# -------------------------
# PageCanvas (page painter)
# -------------------------

class PageCanvas(QtWidgets.QWidget):
    """Paints the current frame centered and letterboxed, or a full-page message."""
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAutoFillBackground(True)
        pal = self.palette()
        pal.setColor(QtGui.QPalette.Window, QtGui.QColor(0, 0, 0))
        self.setPalette(pal)
        self.setSizePolicy(QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Expanding)
        self._image: Optional[QtGui.QImage] = None
        self._image_token: Optional[int] = None
        self._title = "Loading presentation..."
        self._subtitle = ""
        self._opacity = 1.0

        self._fade = QtCore.QVariantAnimation(self)
        self._fade.valueChanged.connect(self._set_opacity)

    def show_message(self, title: str, subtitle: str = "") -> None:
        self._image = None
        self._image_token = None
        self._title, self._subtitle = title, subtitle
        self.update()

    def show_frame(self, token: int, raster: Raster) -> None:
        if token == self._image_token:
            return
        self._image = raster_to_qimage(raster)
        self._image_token = token
        self.update()

    def fade(self, to: float, ms: int) -> None:
        self._fade.stop()
        if ms <= 0:
            self._set_opacity(to)
            return
        self._fade.setStartValue(self._opacity)
        self._fade.setEndValue(float(to))
        self._fade.setDuration(ms)
        self._fade.start()

    def _set_opacity(self, value) -> None:
        self._opacity = float(value)
        self.update()

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:
        painter = QtGui.QPainter(self)
        painter.setRenderHints(QtGui.QPainter.SmoothPixmapTransform | QtGui.QPainter.TextAntialiasing)
        if self._image is None or self._image.isNull():
            self._draw_placeholder(painter)
            return

        # draw at native logical size (Qt accounts for DPR)
        iw = int(self._image.width() / self._image.devicePixelRatio())
        ih = int(self._image.height() / self._image.devicePixelRatio())
        x = (self.width() - iw) // 2
        y = (self.height() - ih) // 2
        painter.setOpacity(self._opacity)
        painter.drawImage(QtCore.QRect(x, y, iw, ih), self._image)

    def _draw_placeholder(self, p: QtGui.QPainter):
        rect = self.rect()
        p.fillRect(rect, QtGui.QColor(0, 0, 0))
        p.setPen(QtGui.QPen(QtGui.QColor(220, 220, 225)))
        font = p.font()
        font.setPointSize(24)
        p.setFont(font)
        title_rect = rect.adjusted(0, 0, 0, -40)
        p.drawText(title_rect, Qt.AlignCenter, self._title)
        if self._subtitle:
            font.setPointSize(13)
            p.setFont(font)
            p.setPen(QtGui.QPen(QtGui.QColor(150, 150, 160)))
            p.drawText(rect.adjusted(0, 60, 0, 0), Qt.AlignCenter, self._subtitle)


# -------------------------
# InfoBar (caption + progress)
# -------------------------

class InfoBar(QtWidgets.QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAttribute(Qt.WA_TransparentForMouseEvents)
        lay = QtWidgets.QVBoxLayout(self)
        lay.setContentsMargins(16, 8, 16, 8)
        self.caption = QtWidgets.QLabel(self)
        self.caption.setStyleSheet("color: #eee; background: rgba(0,0,0,140); padding: 4px 10px;")
        self.caption.setAlignment(Qt.AlignCenter)
        self.progress = QtWidgets.QProgressBar(self)
        self.progress.setRange(0, 1000)
        self.progress.setTextVisible(False)
        self.progress.setFixedHeight(4)
        lay.addStretch(1)
        lay.addWidget(self.caption)
        lay.addWidget(self.progress)

    def refresh(self, s: PlaybackState) -> None:
        self.caption.setText(s.caption())
        self.caption.setVisible(s.input_active)
        self.progress.setValue(int(s.progress * 1000))


# -------------------------
# PlayerWindow
# -------------------------

class PlayerWindow(QtWidgets.QMainWindow):
    """Kiosk window: owns the session, turns Qt events into state commands."""

    def __init__(self, session_factory: Callable[..., PlayerSession], screen_id: str,
                 swipe_threshold: float = 50, transition_ms: int = 250,
                 fullscreen: bool = True, parent=None):
        super().__init__(parent)
        self.setWindowTitle(f"Signage Player — {screen_id}")
        self.resize(1280, 720)
        self.setAttribute(Qt.WA_AcceptTouchEvents)

        self._bridge = _Bridge(self)
        self._bridge.loaded.connect(self._on_loaded)
        self._bridge.failed.connect(self._on_load_failed)

        self.session = session_factory(
            timer=QtTimer(self),
            idle_timer=QtTimer(self, single_shot=True),
            post=self._bridge.command.emit,
        )
        self._bridge.command.connect(self.session.store.dispatch, Qt.QueuedConnection)
        self.session.store.subscribe(self._on_state)

        self.canvas = PageCanvas(self)
        self.setCentralWidget(self.canvas)
        self.info = InfoBar(self.canvas)
        self._swipe = SwipeTracker(threshold=swipe_threshold)
        self._transition_ms = transition_ms
        self._loading = False

        if fullscreen:
            self.showFullScreen()

    # ------------- loading -------------
    def start(self) -> None:
        """Load in the background; the window stays responsive and shows a spinner text."""
        if self._loading:
            return
        self._loading = True
        self.canvas.show_message("Loading presentation...")

        def _work():
            try:
                self.session.prepare()
            except Exception as e:  # handed to the GUI thread, shown as a full-page error
                self._bridge.failed.emit(e)
                return
            self._bridge.loaded.emit()

        threading.Thread(target=_work, name="session-load", daemon=True).start()

    def reload(self) -> None:
        if self._loading:
            return
        self.session.unload()
        self.start()

    def _on_loaded(self) -> None:
        self._loading = False
        self.session.begin(self._viewport())

    def _on_load_failed(self, err: Exception) -> None:
        self._loading = False
        if isinstance(err, ScreenNotFound):
            log.error("%s", err)
            self.canvas.show_message("⚠ Screen not found", "Please check the URL and try again.")
        else:
            log.error("Failed to load player: %s", err)
            self.canvas.show_message("⚠ Failed to load player", str(err))

    # ------------- state → view -------------
    def _on_state(self, old: PlaybackState, new: PlaybackState) -> None:
        if new.phase == Phase.EMPTY:
            self.canvas.show_message(
                "No Content",
                "No PDF files have been uploaded for this screen yet.",
            )
        elif new.phase == Phase.TRANSITIONING and old.phase != Phase.TRANSITIONING:
            if new.index != old.index or old.frame is None:
                self.canvas.fade(0.0, self._transition_ms)
        elif new.phase == Phase.DISPLAYING and old.phase == Phase.TRANSITIONING:
            if new.frame is not None:
                self.canvas.show_frame(new.frame.token, new.frame.image)
            self.canvas.fade(1.0, self._transition_ms // 5)
        self.info.refresh(new)

    # ------------- events -------------
    def _viewport(self) -> Viewport:
        size = self.canvas.size()
        return Viewport(width=max(1, size.width()), height=max(1, size.height()),
                        dpr=self.canvas.devicePixelRatioF())

    def _dispatch(self, cmd: Optional[Command]) -> None:
        if cmd is not None:
            self.session.store.dispatch(cmd)

    def resizeEvent(self, e: QtGui.QResizeEvent) -> None:
        super().resizeEvent(e)
        self.info.setGeometry(self.canvas.rect())
        vp = self._viewport()
        self._dispatch(ViewportResized(vp.width, vp.height, vp.dpr))

    def keyPressEvent(self, event: QtGui.QKeyEvent) -> None:
        key = event.key()
        if key == Qt.Key_Escape:
            self.close()
        elif key == Qt.Key_F5:
            self.reload()
        elif key == Qt.Key_F:
            if self.isFullScreen():
                self.showNormal()
            else:
                self.showFullScreen()
        elif key in _QT_KEYS:
            self._dispatch(command_for_key(_QT_KEYS[key]))
        else:
            super().keyPressEvent(event)
            return
        event.accept()

    def mousePressEvent(self, event: QtGui.QMouseEvent) -> None:
        pos = event.position()
        self._swipe.press(pos.x(), pos.y())
        self._dispatch(PointerActivity())

    def mouseReleaseEvent(self, event: QtGui.QMouseEvent) -> None:
        pos = event.position()
        self._dispatch(self._swipe.release(pos.x(), pos.y(), self.width()))

    def event(self, e: QtCore.QEvent) -> bool:
        if e.type() in (QtCore.QEvent.TouchBegin, QtCore.QEvent.TouchEnd, QtCore.QEvent.TouchCancel):
            points = e.points()
            if points:
                pos = points[0].position()
                if e.type() == QtCore.QEvent.TouchBegin:
                    self._swipe.press(pos.x(), pos.y())
                    self._dispatch(PointerActivity())
                elif e.type() == QtCore.QEvent.TouchEnd:
                    self._dispatch(self._swipe.release(pos.x(), pos.y(), self.width()))
                else:
                    self._swipe.cancel()
            e.accept()
            return True
        return super().event(e)

    def closeEvent(self, e: QtGui.QCloseEvent) -> None:
        self.session.close()
        super().closeEvent(e)
