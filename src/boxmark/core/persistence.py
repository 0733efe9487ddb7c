"""JSON sidecar persistence for per-image annotation lists."""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Union

from .errors import AnnotationFileError

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = ".annotations.json"
_NUMERIC_KEYS = ("x", "y", "width", "height")


def sidecar_path(image_path: Union[str, Path]) -> Path:
    """Path of the annotation file stored next to an image."""
    image_path = Path(image_path)
    return image_path.with_name(image_path.stem + SIDECAR_SUFFIX)


class JsonAnnotationFile:
    """
    Reads and writes the annotation list of one image as JSON.

    File structure:
    {
        "image": "street.jpg",
        "width": 1600,
        "height": 1200,
        "annotations": [
            {"x": 200, "y": 200, "width": 400, "height": 400,
             "label": "car", "color": 65280}
        ]
    }
    """

    def exists(self, image_path: Union[str, Path]) -> bool:
        return sidecar_path(image_path).exists()

    def read(self, image_path: Union[str, Path]) -> List[Dict[str, Any]]:
        """
        Read the annotation records for an image.

        Entries that are not objects are skipped. Geometry is not validated
        here; records with missing or malformed values are kept so the editor
        can show them for correction and write them back.

        Args:
            image_path: Path to the image file

        Returns:
            List of record dictionaries, empty when no sidecar exists

        Raises:
            AnnotationFileError: If the file cannot be read or parsed
        """
        path = sidecar_path(image_path)
        if not path.exists():
            logger.debug(f"No annotation file at {path}")
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise AnnotationFileError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise AnnotationFileError(f"Cannot read {path}: {e}") from e

        if isinstance(data, list):
            raw_records = data
        elif isinstance(data, dict) and isinstance(data.get("annotations"), list):
            raw_records = data["annotations"]
        else:
            raise AnnotationFileError(f"Unexpected annotation file structure in {path}")

        records = []
        for i, record in enumerate(raw_records):
            if not isinstance(record, dict):
                logger.warning(f"Skipping record {i} in {path}: not an object")
                continue
            records.append(record)

        logger.info(f"Loaded {len(records)} annotations from {path}")
        return records

    def write(
        self,
        image_path: Union[str, Path],
        records: List[Dict[str, Any]],
        img_width: int,
        img_height: int,
    ) -> Path:
        """
        Write the annotation records for an image.

        The file is written to a temporary sibling first and then moved into
        place, so a failed write leaves the previous file intact. Non-finite
        geometry is written as null to keep the file valid JSON.

        Args:
            image_path: Path to the image file
            records: Records in list order
            img_width: Natural image width
            img_height: Natural image height

        Returns:
            Path of the written file

        Raises:
            AnnotationFileError: If the file cannot be written
        """
        image_path = Path(image_path)
        path = sidecar_path(image_path)
        payload = {
            "image": image_path.name,
            "width": img_width,
            "height": img_height,
            "annotations": [_finite_or_null(record) for record in records],
        }

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=path.name, suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, allow_nan=False)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise AnnotationFileError(f"Cannot write {path}: {e}") from e

        logger.info(f"Saved {len(records)} annotations to {path}")
        return path


def _finite_or_null(record: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a record with NaN/infinite geometry replaced by None."""
    cleaned = dict(record)
    for key in _NUMERIC_KEYS:
        value = cleaned.get(key)
        if isinstance(value, float) and not math.isfinite(value):
            cleaned[key] = None
    return cleaned
