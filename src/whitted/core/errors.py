"""Exception types raised by the renderer.

Invalid input is reported with ``ValueError`` subclasses so callers that
already catch ``ValueError`` keep working. Capacity problems (too many
shapes, lights, textures) are raised as ``RuntimeError`` by the storage
modules and are not part of this hierarchy.
"""


class RenderError(Exception):
    """Base class for all renderer errors."""


class ConfigError(RenderError, ValueError):
    """Raised when a RenderConfig fails validation."""


class SceneError(RenderError, ValueError):
    """Raised when a scene cannot be built.

    Covers malformed scene descriptions, singular transforms, degenerate
    camera setups and out-of-range material parameters.
    """


class TextureLoadError(SceneError):
    """Raised when a texture image is missing or cannot be decoded."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot load texture '{path}': {reason}")
        self.path = path
        self.reason = reason
