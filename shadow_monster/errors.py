"""Exception types raised by the shadow monster pipeline stages."""

from __future__ import annotations


class RenderError(RuntimeError):
    """Scene could not be rendered into a shadow mask."""


class MissingShadowCaster(RenderError):
    """Scene has no shadow-casting light."""

    def __init__(self, message: str = "Scene has no shadow-casting light") -> None:
        super().__init__(message)


class MissingBackdrop(RenderError):
    """Scene has no backdrop surface to receive shadows."""

    def __init__(self, message: str = "Scene has no backdrop surface") -> None:
        super().__init__(message)


class ExtrudeError(ValueError):
    """Extrusion was requested with invalid parameters."""


class InvalidDepth(ExtrudeError):
    """Extrusion depth is not a finite, strictly positive number."""

    def __init__(self, depth: object) -> None:
        super().__init__(f"Extrusion depth must be > 0, got {depth!r}")
        self.depth = depth


class GenerationCancelled(Exception):
    """A generation request was abandoned by its caller."""
