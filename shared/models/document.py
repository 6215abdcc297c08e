"""Pydantic models for the host document surface.

Hierarchy:
  TextStyle:   character styling applied to a span (background, foreground, bold).
  AnchorRange: current position of a document-anchored marker.
"""

from pydantic import BaseModel


class TextStyle(BaseModel):
    """Character styling of a text span. None means "inherit / not set"."""

    background_color: str | None = None
    foreground_color: str | None = None
    bold: bool | None = None


class AnchorRange(BaseModel):
    """Half-open character range [start, end) currently covered by an anchor."""

    anchor_id: str
    start: int
    end: int
