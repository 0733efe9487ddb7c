"""Background worker thread for saving annotations."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from PyQt6.QtCore import QThread, pyqtSignal

from ..core.errors import AnnotationFileError
from ..core.persistence import JsonAnnotationFile

logger = logging.getLogger(__name__)


class AnnotationSaver(QThread):
    """
    Background thread writing one image's annotation list to disk.

    Works on its own deep copy of the records, so the editor can keep
    changing its annotations while the save is in flight.
    """

    # Signal emitted with the written file path and the snapshot generation on success
    saved = pyqtSignal(str, int)

    # Signal emitted with an error message on failure
    failed = pyqtSignal(str)

    def __init__(
        self,
        image_path: Path,
        records: List[Dict[str, Any]],
        img_width: int,
        img_height: int,
        writer: Optional[JsonAnnotationFile] = None,
        generation: int = 0,
    ) -> None:
        """
        Initialize the saver.

        Args:
            image_path: Image the annotations belong to
            records: Annotation records to write
            img_width: Natural image width
            img_height: Natural image height
            writer: Persistence handler, defaults to the JSON sidecar format
            generation: Change count of the editor when the records were taken
        """
        super().__init__()
        self.image_path = Path(image_path)
        self.records = copy.deepcopy(records)
        self.img_width = img_width
        self.img_height = img_height
        self.writer = writer or JsonAnnotationFile()
        self.generation = generation

    def run(self) -> None:
        """Write the records."""
        try:
            path = self.writer.write(self.image_path, self.records, self.img_width, self.img_height)
        except AnnotationFileError as e:
            logger.error(f"Saving annotations for {self.image_path.name} failed: {e}")
            self.failed.emit(str(e))
            return
        self.saved.emit(str(path), self.generation)
