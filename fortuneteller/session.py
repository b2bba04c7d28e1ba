"""In-memory session: loaded images, selection records and their assignments."""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

import numpy as np
from PyQt6.QtGui import QImage

from fortuneteller.errors import NoRegionsFoundError
from fortuneteller.imaging import qimage_to_rgba_array
from fortuneteller.models import Selection, SelectionRecord, SourceImage
from fortuneteller.region_finder import (
    BackgroundType,
    SegmentOptions,
    load_rgba_pixels,
    segment_pixels,
)
from fortuneteller.selector import create_thumbnail, extract_selection, fit_thumbnail
from fortuneteller.template import FortuneTellerTemplate

logger = logging.getLogger(__name__)

DRAWN_PREFIX = "Selection"
AUTO_PREFIX = "Face"


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Session:
    """Owns every SourceImage and SelectionRecord for the lifetime of the app.

    The template only references records; deleting a record here also removes
    every assignment pointing at it.
    """

    def __init__(self, template: Optional[FortuneTellerTemplate] = None) -> None:
        self.template = template if template is not None else FortuneTellerTemplate()
        self.images: List[SourceImage] = []
        self.selections: List[SelectionRecord] = []
        self._counter: int = 0  # numbering for record names

    # ── images ───────────────────────────────────────────────────────────

    def add_image(self, name: str, image: QImage, path: Optional[str] = None) -> SourceImage:
        source = SourceImage(id=_new_id("img"), name=name, image=image, path=path)
        self.images.append(source)
        logger.debug("Added image %s as %s", name, source.id)
        return source

    def find_image(self, image_id: str) -> Optional[SourceImage]:
        for img in self.images:
            if img.id == image_id:
                return img
        return None

    def _require_image(self, image_id: str) -> SourceImage:
        source = self.find_image(image_id)
        if source is None:
            raise KeyError(f"Unknown image: {image_id}")
        return source

    # ── selections ───────────────────────────────────────────────────────

    def next_name(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix} {self._counter}"

    def add_selection(self, image_id: str, selection: Selection,
                      prefix: str = DRAWN_PREFIX) -> SelectionRecord:
        """Extract *selection* (source-image space) and store it as a new record."""
        source = self._require_image(image_id)
        record = SelectionRecord(
            id=_new_id("sel"),
            name=self.next_name(prefix),
            source_image_id=source.id,
            selection=selection,
            raster=extract_selection(source.image, selection),
            source_name=source.name,
        )
        self.selections.append(record)
        return record

    def complete_selection(self, image_id: str, display_selection: Selection,
                           sx: float = 1.0, sy: float = 1.0) -> SelectionRecord:
        """Store a selection drawn in display space, scaled into image space."""
        record = self.add_selection(image_id, display_selection.scaled(sx, sy))
        logger.info("Created %s from %s", record.name, record.source_name)
        return record

    def auto_segment(self, image_id: str, options: SegmentOptions) -> List[SelectionRecord]:
        """Create one record per detected region.

        Raises NoRegionsFoundError, creating nothing, when detection is empty.
        """
        source = self._require_image(image_id)
        regions = segment_pixels(self._analysis_pixels(source), options)
        if not regions:
            raise NoRegionsFoundError()

        records = [
            self.add_selection(source.id, region.to_selection(), prefix=AUTO_PREFIX)
            for region in regions
        ]
        logger.info("Auto-segmented %s into %d regions (%s)",
                    source.name, len(records), BackgroundType(options.bg_type).value)
        return records

    def _analysis_pixels(self, source: SourceImage) -> np.ndarray:
        """RGBA pixels for segmentation.

        Images loaded from disk are re-read with OpenCV so translucent pixels
        keep their straight-alpha colour; the premultiplied display copy is
        used when there is no readable file of the same size.
        """
        if source.path:
            try:
                pixels = load_rgba_pixels(source.path)
            except (FileNotFoundError, ValueError):
                logger.warning("Cannot re-read %s, analysing the loaded copy", source.path)
            else:
                if pixels.shape[:2] == (source.image.height(), source.image.width()):
                    return pixels
                logger.warning("Size of %s changed on disk, analysing the loaded copy", source.path)
        return qimage_to_rgba_array(source.image)

    def find_selection(self, selection_id: str) -> Optional[SelectionRecord]:
        for record in self.selections:
            if record.id == selection_id:
                return record
        return None

    def delete_selection(self, selection_id: str) -> None:
        """Remove a record and every assignment referencing it."""
        record = self.find_selection(selection_id)
        if record is None:
            logger.debug("Ignoring delete of unknown selection %s", selection_id)
            return
        self.selections.remove(record)
        for section_id in self.template.sections_assigned_to(selection_id):
            self.template.clear_assignment(section_id)
        logger.info("Deleted %s", record.name)

    def thumbnail(self, record: SelectionRecord, size: int) -> QImage:
        """Preview tile re-extracted from the record's source image."""
        source = self.find_image(record.source_image_id)
        if source is None:
            return fit_thumbnail(record.raster, size)
        return create_thumbnail(source.image, record.selection, size)

    # ── assignments ──────────────────────────────────────────────────────

    def assign(self, section_id: str, selection_id: str) -> bool:
        """Assign a record by id; unknown ids are ignored."""
        record = self.find_selection(selection_id)
        if record is None:
            logger.debug("Ignoring assignment of unknown selection %s", selection_id)
            return False
        self.template.set_assignment(section_id, record)
        return True

    def quick_fill(self) -> int:
        """Assign records in creation order to the available sections in order."""
        sections = self.template.get_available_sections()
        pairs = list(zip(sections, self.selections))
        for section, record in pairs:
            self.template.set_assignment(section.id, record)
        logger.info("Quick filled %d sections", len(pairs))
        return len(pairs)

    def clear_all(self) -> None:
        """Forget every selection and assignment (images stay loaded)."""
        self.selections = []
        self._counter = 0
        self.template.clear_all_assignments()
