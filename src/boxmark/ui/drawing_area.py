"""Drawing area canvas widget for image annotation."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple, Union

from PyQt6.QtCore import Qt, QPointF, QRectF, QTimer, pyqtSignal
from PyQt6.QtGui import (
    QPainter, QColor, QPen, QFont, QFontMetricsF, QPainterPath,
    QPixmap, QMouseEvent, QKeyEvent, QResizeEvent
)
from PyQt6.QtWidgets import QInputDialog, QLineEdit, QWidget

from ..core.editor import AnnotationEditor
from ..core.hit_testing import HitKind
from ..core.interaction import InputEvent, Mode
from ..core.models import Annotation, Rect, to_qcolor
from ..core.render_sync import DrawingSurface

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = QColor(0x2C, 0x2C, 0x2C)

# Cursor per handle index (TL, T, TR, R, BR, B, BL, L)
HANDLE_CURSORS = [
    Qt.CursorShape.SizeFDiagCursor,
    Qt.CursorShape.SizeVerCursor,
    Qt.CursorShape.SizeBDiagCursor,
    Qt.CursorShape.SizeHorCursor,
    Qt.CursorShape.SizeFDiagCursor,
    Qt.CursorShape.SizeVerCursor,
    Qt.CursorShape.SizeBDiagCursor,
    Qt.CursorShape.SizeHorCursor,
]

KEY_NAMES = (
    (Qt.Key.Key_Delete, "Delete"),
    (Qt.Key.Key_Backspace, "Backspace"),
)

_RectOp = Tuple[str, Rect, int, int, Optional[int]]
_TextOp = Tuple[str, str, float, float, int]


class PainterSurface(DrawingSurface):
    """
    Drawing surface that records operations for a widget to replay.

    Operations accumulate between ``clear`` and ``present``; presenting
    swaps them in as the widget's current frame and requests a repaint.
    """

    def __init__(self, widget: QWidget) -> None:
        self._widget = widget
        self._pending: List[Union[_RectOp, _TextOp]] = []
        self.frame: List[Union[_RectOp, _TextOp]] = []

    def clear(self) -> None:
        self._pending = []

    def draw_rect(self, rect: Rect, color: int, width: int, fill: Optional[int] = None) -> None:
        self._pending.append(("rect", rect, color, width, fill))

    def draw_text(self, text: str, x: float, y: float, color: int) -> None:
        self._pending.append(("text", text, x, y, color))

    def present(self) -> None:
        self.frame = self._pending
        self._pending = []
        self._widget.update()

    def reset(self) -> None:
        self._pending = []
        self.frame = []


class DrawingArea(QWidget):
    """
    Canvas widget for drawing and editing bounding box annotations.

    Displays the image fitted to the widget and translates Qt input into
    editor events. Annotation visuals come from the editor's render pipeline
    through a PainterSurface.
    """

    # Signals
    label_dialog_finished = pyqtSignal(bool)

    def __init__(self, editor: AnnotationEditor, parent: Optional[QWidget] = None) -> None:
        """Initialize the drawing area."""
        super().__init__(parent)

        self.editor = editor
        self.label_font_size = editor.config.label_font_size
        self._pixmap: Optional[QPixmap] = None
        self.surface = PainterSurface(self)
        self.editor.set_surface(self.surface)
        self.editor.label_requested.connect(self._on_label_requested)
        self.editor.layout_changed.connect(self.update)

        # Widget setup
        self.setMinimumSize(
            editor.config.min_container_width,
            editor.config.min_container_height
        )
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    # === Image ===

    def pixmap(self) -> Optional[QPixmap]:
        """Return the current pixmap."""
        return self._pixmap

    def set_image(self, pixmap: QPixmap, url: str) -> None:
        """
        Show a new image and reset the editor for it.

        Args:
            pixmap: Loaded image
            url: Image location passed through to the editor
        """
        self._pixmap = pixmap
        self.surface.reset()
        self.editor.resize(self.width(), self.height())
        self.editor.load_image(url, pixmap.width(), pixmap.height())
        self.update()

    def clear(self) -> None:
        """Remove the image and all annotations."""
        self._pixmap = None
        self.surface.reset()
        self.editor.close_image()
        self.update()

    # === Event Handlers ===

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press events."""
        self.setFocus()
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = event.position()
        self.editor.handle_event(InputEvent.down(pos.x(), pos.y()))

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move events."""
        pos = event.position()
        self.editor.handle_event(InputEvent.move(pos.x(), pos.y()))
        self._update_cursor(pos)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Handle mouse release events."""
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = event.position()
        self.editor.handle_event(InputEvent.up(pos.x(), pos.y()))
        self._update_cursor(pos)

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        """Handle double-click to delete a box."""
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = event.position()
        self.editor.handle_event(InputEvent.double_click(pos.x(), pos.y()))

    def leaveEvent(self, event) -> None:
        """Abandon the gesture in progress when the pointer leaves."""
        self.editor.handle_event(InputEvent.leave())
        super().leaveEvent(event)

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle key press events."""
        key = event.key()
        for qt_key, key_name in KEY_NAMES:
            if key == qt_key:
                self.editor.handle_event(InputEvent.key_down(key_name))
                event.accept()
                return
        super().keyPressEvent(event)

    def resizeEvent(self, event: QResizeEvent) -> None:
        """Forward container size changes to the editor."""
        super().resizeEvent(event)
        size = event.size()
        self.editor.resize(size.width(), size.height())

    def paintEvent(self, event) -> None:
        """Paint the image and the current annotation frame."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), BACKGROUND_COLOR)

        viewport = self.editor.viewport_manager.viewport
        if self._pixmap is None or self._pixmap.isNull() or not viewport.is_valid:
            painter.end()
            return

        bounds = self.editor.viewport_manager.image_bounds()
        painter.drawPixmap(
            QRectF(bounds.x, bounds.y, bounds.width, bounds.height),
            self._pixmap,
            QRectF(self._pixmap.rect())
        )

        for op in self.surface.frame:
            if op[0] == "rect":
                self._paint_rect(painter, *op[1:])
            else:
                self._paint_text(painter, *op[1:])

        painter.end()

    # === Drawing Helper Methods ===

    def _paint_rect(
        self,
        painter: QPainter,
        rect: Rect,
        color: int,
        width: int,
        fill: Optional[int]
    ) -> None:
        painter.setPen(QPen(to_qcolor(color), width))
        if fill is None:
            painter.setBrush(Qt.BrushStyle.NoBrush)
        else:
            painter.setBrush(to_qcolor(fill))
        painter.drawRect(QRectF(rect.x, rect.y, rect.width, rect.height))

    def _paint_text(self, painter: QPainter, text: str, x: float, y: float, color: int) -> None:
        """Draw a bold label with a dark outline, top-left anchored."""
        font = QFont("Arial")
        font.setPixelSize(self.label_font_size)
        font.setBold(True)
        ascent = QFontMetricsF(font).ascent()

        path = QPainterPath()
        path.addText(QPointF(x, y + ascent), font, text)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.strokePath(path, QPen(QColor(0, 0, 0), 2))
        painter.fillPath(path, to_qcolor(color))

    def _update_cursor(self, pos: QPointF) -> None:
        """Set the cursor for what lies under the pointer."""
        mode = self.editor.controller.mode
        if mode is Mode.RESIZING:
            return
        if mode is Mode.MOVING:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            return

        viewport_manager = self.editor.viewport_manager
        if not viewport_manager.viewport.is_valid:
            self.setCursor(Qt.CursorShape.ArrowCursor)
            return

        hit = self.editor.controller.hit_tester.hit_test(
            pos.x(), pos.y(), self.editor.store.annotations, self.editor.selected_index
        )
        if hit is not None and hit.kind is HitKind.HANDLE:
            self.setCursor(HANDLE_CURSORS[hit.handle_index])
        elif hit is not None:
            self.setCursor(Qt.CursorShape.SizeAllCursor)
        elif viewport_manager.image_bounds().contains(pos.x(), pos.y()):
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.setCursor(Qt.CursorShape.ArrowCursor)

    # === Label Entry ===

    def _on_label_requested(self, proposal: Annotation) -> None:
        # Let the release event finish before opening a modal dialog
        QTimer.singleShot(0, lambda: self._prompt_label(proposal))

    def _prompt_label(self, proposal: Annotation) -> None:
        """Ask for the label of a freshly drawn box."""
        label, ok = QInputDialog.getText(
            self,
            "Enter Label",
            "Enter annotation label:",
            QLineEdit.EchoMode.Normal,
            proposal.label
        )
        if ok:
            self.editor.confirm_label(label)
        else:
            self.editor.cancel_label()
        self.label_dialog_finished.emit(ok)
