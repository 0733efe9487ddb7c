"""Main application window for Boxmark."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QPixmap
from PyQt6.QtWidgets import (
    QDockWidget, QFileDialog, QLabel, QMainWindow, QMessageBox, QStatusBar
)

from ..core.config import AppConfig, ConfigManager
from ..core.editor import AnnotationEditor
from ..core.errors import AnnotationFileError
from ..core.persistence import JsonAnnotationFile, sidecar_path
from ..workers.annotation_saver import AnnotationSaver
from .annotation_list import AnnotationListPanel
from .drawing_area import DrawingArea

logger = logging.getLogger(__name__)

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp)"


class MainWindow(QMainWindow):
    """
    Main application window for Boxmark.

    Hosts the drawing area and annotation list, and handles opening images
    and saving their annotations to JSON sidecar files.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        """Initialize the main window."""
        super().__init__()

        self.config_manager = config_manager or ConfigManager()
        self.annotation_file = JsonAnnotationFile()
        self.editor = AnnotationEditor(self.config, parent=self)

        # State
        self.current_image: Optional[Path] = None
        self.saver: Optional[AnnotationSaver] = None
        self._dirty = False
        self._generation = 0  # bumped on every annotation change

        # UI elements (initialized in _init_ui)
        self.drawing_area: Optional[DrawingArea] = None
        self.annotation_list: Optional[AnnotationListPanel] = None
        self.status_bar: Optional[QStatusBar] = None
        self.file_label: Optional[QLabel] = None
        self.count_label: Optional[QLabel] = None

        self._init_ui()
        self._setup_connections()

        logger.info("MainWindow initialization complete")

    @property
    def config(self) -> AppConfig:
        """Get the current configuration."""
        return self.config_manager.config

    def _init_ui(self) -> None:
        """Initialize the user interface."""
        self.setWindowTitle("Boxmark")
        self.setGeometry(100, 100, 1200, 800)

        self.drawing_area = DrawingArea(self.editor)
        self.setCentralWidget(self.drawing_area)

        dock = QDockWidget("Annotations", self)
        dock.setObjectName("AnnotationsDock")
        dock.setAllowedAreas(
            Qt.DockWidgetArea.LeftDockWidgetArea | Qt.DockWidgetArea.RightDockWidgetArea
        )
        self.annotation_list = AnnotationListPanel(self.editor)
        dock.setWidget(self.annotation_list)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, dock)

        self._create_status_bar()
        self._create_menus()

    def _create_status_bar(self) -> None:
        """Create the status bar."""
        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

        self.file_label = QLabel()
        self.status_bar.addPermanentWidget(self.file_label)

        self.count_label = QLabel()
        self.status_bar.addPermanentWidget(self.count_label)

    def _create_menus(self) -> None:
        """Create the menu bar."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("File")

        open_action = QAction("Open Image...", self)
        open_action.setShortcut("Ctrl+O")
        open_action.triggered.connect(self._open_image_dialog)
        file_menu.addAction(open_action)

        self.recent_paths_menu = file_menu.addMenu("Recent Images")
        self._update_recent_paths_menu()

        file_menu.addSeparator()

        self.save_action = QAction("Save Annotations", self)
        self.save_action.setShortcut("Ctrl+S")
        self.save_action.triggered.connect(self._save_annotations)
        self.save_action.setEnabled(False)
        file_menu.addAction(self.save_action)

        file_menu.addSeparator()

        exit_action = QAction("Exit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

    def _setup_connections(self) -> None:
        """Set up signal/slot connections."""
        self.editor.annotations_changed.connect(self._on_annotations_changed)

    # === Image handling ===

    def _open_image_dialog(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Image", self.config.default_directory, IMAGE_FILTER
        )
        if path:
            self.open_image(path)

    def open_image(self, path: str) -> bool:
        """
        Open an image and load its annotations.

        Args:
            path: Image file path

        Returns:
            True if the image was opened
        """
        image_path = Path(path)
        pixmap = QPixmap(str(image_path))
        if pixmap.isNull():
            QMessageBox.warning(self, "Error", f"Failed to load image: {image_path.name}")
            return False

        if self.current_image and self._dirty and self.config.autosave:
            self._wait_for_saver()
            self._save_annotations()

        try:
            records = self.annotation_file.read(image_path)
        except AnnotationFileError as e:
            logger.error(f"Error reading annotations: {e}")
            QMessageBox.warning(self, "Error", f"Could not read annotations:\n{e}")
            records = []

        self.current_image = image_path
        self.drawing_area.set_image(pixmap, str(image_path))
        self.editor.set_annotations(records)
        self._dirty = False

        self.file_label.setText(image_path.name)
        self.save_action.setEnabled(True)
        self.config_manager.update(default_directory=str(image_path.parent))
        self.config_manager.add_recent_path(str(image_path))
        self._update_recent_paths_menu()
        self._update_count()
        return True

    def _update_recent_paths_menu(self) -> None:
        """Rebuild the recent images submenu."""
        self.recent_paths_menu.clear()
        recent = self.config.recent_paths
        if not recent:
            empty = self.recent_paths_menu.addAction("(none)")
            empty.setEnabled(False)
            return
        for path in recent:
            action = self.recent_paths_menu.addAction(path)
            action.triggered.connect(lambda checked, p=path: self.open_image(p))

    # === Saving ===

    def _save_annotations(self) -> None:
        """Save a snapshot of the current annotations in the background."""
        if not self.current_image:
            return
        if self.saver is not None and self.saver.isRunning():
            self._show_status_message("A save is already in progress")
            return

        width, height = self.editor.image_size
        self.saver = AnnotationSaver(
            self.current_image,
            self.editor.get_annotations(),
            int(width),
            int(height),
            writer=self.annotation_file,
            generation=self._generation,
        )
        self.saver.saved.connect(self._on_saved)
        self.saver.failed.connect(self._on_save_failed)
        self.save_action.setEnabled(False)
        self.saver.start()

    def _wait_for_saver(self) -> None:
        """Block until a save in flight has finished."""
        if self.saver is not None and self.saver.isRunning():
            self.saver.wait()

    def _on_saved(self, path: str, generation: int) -> None:
        # Only a snapshot of the image still open, with no edits since, is clean
        if (
            self.current_image is not None
            and Path(path) == sidecar_path(self.current_image)
            and generation == self._generation
        ):
            self._dirty = False
        self.save_action.setEnabled(self.current_image is not None)
        self._show_status_message(f"Annotations saved to {Path(path).name}")

    def _on_save_failed(self, message: str) -> None:
        # The editor still holds the annotations, so the user can retry
        self.save_action.setEnabled(True)
        QMessageBox.warning(self, "Save Failed", f"Failed to save annotations:\n{message}")

    # === Status ===

    def _on_annotations_changed(self) -> None:
        self._dirty = True
        self._generation += 1
        self._update_count()

    def _update_count(self) -> None:
        count = len(self.editor.store)
        self.count_label.setText(f"{count} annotation{'' if count == 1 else 's'}")

    def _show_status_message(self, message: str) -> None:
        self.status_bar.showMessage(message, 3000)

    def closeEvent(self, event) -> None:
        """Handle window close."""
        self._wait_for_saver()
        if self.current_image and self._dirty and self.config.autosave:
            self._save_annotations()
            self._wait_for_saver()
        super().closeEvent(event)
