"""Render configuration.

RenderConfig collects every switch the renderer consumes: feature toggles
for shadows, reflections and textures, the dispatch mode, sampling and
recursion limits, and the output size.

Example:
    >>> from src.whitted.core.config import RenderConfig
    >>> config = RenderConfig(width=320, height=240, enable_shadows=True, samples=4)
    >>> config.validate()
"""

from dataclasses import asdict, dataclass, fields
from typing import Any

from src.whitted.core.errors import ConfigError

# Limits mirror the preallocated render target (see core.dispatch)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Default reflection recursion ceiling (camera ray plus four bounces)
DEFAULT_MAX_RECURSION_DEPTH = 4

# Upper bound on the reflection loop length
MAX_RECURSION_DEPTH = 64


@dataclass
class RenderConfig:
    """Options controlling a single render.

    Attributes:
        width: Output image width in pixels.
        height: Output image height in pixels.
        enable_shadows: Cast shadow rays toward each light.
        enable_reflections: Trace mirror reflections for reflective materials.
        enable_texture: Blend texture colour into the diffuse term.
        enable_parallelism: Render with the parallel kernel instead of the
            serialized one.
        samples: Jittered sub-samples per pixel. One sample is taken at the
            pixel centre.
        max_recursion_depth: Maximum number of reflection bounces.
        seed: Seed for the sub-pixel jitter hash.
        band_rows: Rows per dispatched work unit.
    """

    width: int = 512
    height: int = 512
    enable_shadows: bool = False
    enable_reflections: bool = False
    enable_texture: bool = False
    enable_parallelism: bool = False
    samples: int = 1
    max_recursion_depth: int = DEFAULT_MAX_RECURSION_DEPTH
    seed: int = 0
    band_rows: int = 16

    def validate(self) -> None:
        """Check option ranges.

        Raises:
            ConfigError: If any option is out of range.
        """
        for name in ("width", "height", "samples", "max_recursion_depth", "seed", "band_rows"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer, got {value!r}")

        if not 1 <= self.width <= MAX_IMAGE_WIDTH:
            raise ConfigError(f"width must be in [1, {MAX_IMAGE_WIDTH}], got {self.width}")
        if not 1 <= self.height <= MAX_IMAGE_HEIGHT:
            raise ConfigError(f"height must be in [1, {MAX_IMAGE_HEIGHT}], got {self.height}")
        if self.samples < 1:
            raise ConfigError(f"samples must be at least 1, got {self.samples}")
        if not 0 <= self.max_recursion_depth <= MAX_RECURSION_DEPTH:
            raise ConfigError(
                f"max_recursion_depth must be in [0, {MAX_RECURSION_DEPTH}], "
                f"got {self.max_recursion_depth}"
            )
        if not 0 <= self.seed < 2**32:
            raise ConfigError(f"seed must fit in 32 unsigned bits, got {self.seed}")
        if self.band_rows < 1:
            raise ConfigError(f"band_rows must be at least 1, got {self.band_rows}")

    @property
    def aspect_ratio(self) -> float:
        """Width divided by height."""
        return self.width / self.height

    def to_dict(self) -> dict[str, Any]:
        """Export the configuration as a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderConfig":
        """Build a validated configuration from a dictionary.

        Args:
            data: Mapping of option names to values. Missing options keep
                their defaults.

        Returns:
            The validated configuration.

        Raises:
            ConfigError: If an option is unknown or out of range.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration option(s): {', '.join(unknown)}")

        config = cls(**data)
        config.validate()
        return config
