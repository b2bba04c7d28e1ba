"""Exceptions reported to the user by the selection and segmentation tools."""

from __future__ import annotations


class FortuneTellerError(Exception):
    """Base class for user-facing failures; the session state is left unchanged."""


class InsufficientPointsError(FortuneTellerError):
    """A polygon was finished with fewer than three points."""

    def __init__(self, count: int) -> None:
        super().__init__(
            f"Please add at least 3 points to create a selection (have {count})."
        )
        self.count = count


class NoRegionsFoundError(FortuneTellerError):
    """Auto-segmentation found no component large enough to keep."""

    def __init__(self) -> None:
        super().__init__(
            "No regions found. Try adjusting the threshold or minimum size."
        )
