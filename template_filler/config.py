"""
Generation options.

One immutable options object is attached to a template document and handed
to every generation session.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from .exceptions import TemplateFillerError


@dataclass(frozen=True)
class GenerationOptions:
    """
    Behaviour switches for template filling.

    Attributes:
        ignore_missing_values: Leave unresolved placeholders instead of failing
        ignore_missing_data_pages: Accept a generation call without pages
        ignore_version_mismatch: Accept templates from newer office versions
        embed_external_images: Load local/URL images into the container
        insert_hard_page_breaks: Separate consecutive pages with a hard page break
        prefer_drawing_element: Use DrawingML instead of VML for new pictures
        max_interceptions: Upper bound for interceptor re-entry, None = unbounded
        external_image_timeout: Timeout in seconds for downloading URL images
    """

    ignore_missing_values: bool = False
    ignore_missing_data_pages: bool = False
    ignore_version_mismatch: bool = True
    embed_external_images: bool = True
    insert_hard_page_breaks: bool = True
    prefer_drawing_element: bool = True
    max_interceptions: Optional[int] = None
    external_image_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.max_interceptions is not None and self.max_interceptions < 1:
            raise TemplateFillerError(
                "max_interceptions must be a positive integer",
                str(self.max_interceptions),
            )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "GenerationOptions":
        """
        Build options from a plain mapping (e.g. parsed JSON).

        Args:
            values: Option names and values

        Returns:
            GenerationOptions instance
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise TemplateFillerError("Unknown generation options", ", ".join(unknown))
        return cls(**dict(values))

    def with_changes(self, **changes: Any) -> "GenerationOptions":
        """Return a copy with some options replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
