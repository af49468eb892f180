"""Renderer front end.

RayTracer ties the pieces together: it validates the configuration, uploads
the scene and camera, configures the shading and tracing switches, then runs
the row-band dispatcher and hands back the finished image.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.core.config import RenderConfig
    >>> from src.whitted.core.renderer import RayTracer
    >>> from src.whitted.scene.showcase import create_showcase_scene
    >>>
    >>> tracer = RayTracer(create_showcase_scene(), RenderConfig(width=320, height=240))
    >>> image = tracer.render()  # (240, 320, 3) float32 in [0, 1]
    >>> tracer.save_image("showcase.png")
"""

import logging
import time
from collections.abc import Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.whitted.camera.pinhole import setup_camera
from src.whitted.core.config import RenderConfig
from src.whitted.core.dispatch import (
    ProgressCallback,
    clear_render_target,
    dispatch_progressive,
    get_depth_numpy,
    get_image_numpy,
    setup_render_target,
)
from src.whitted.core.shading import configure_shading
from src.whitted.core.tracer import configure_tracer
from src.whitted.output.export import image_to_uint8, save_png_from_array
from src.whitted.scene.manager import SceneManager
from src.whitted.scene.model import Scene

logger = logging.getLogger(__name__)


class RayTracer:
    """Renders one scene with one configuration.

    The scene lives in module-level Taichi fields, so only the most recently
    constructed RayTracer holds a valid scene.

    Attributes:
        scene: The scene being rendered.
        config: The validated render configuration.
        manager: Scene manager holding the uploaded scene.
    """

    def __init__(self, scene: Scene, config: RenderConfig | None = None) -> None:
        """Upload a scene and prepare the render target.

        Args:
            scene: A built scene (see scene.builder).
            config: Render options. Defaults to RenderConfig().

        Raises:
            ConfigError: If the configuration is invalid.
            SceneError: If the camera basis is degenerate.
            RuntimeError: If the scene exceeds a storage limit.
        """
        self.config = config if config is not None else RenderConfig()
        self.config.validate()
        self.scene = scene

        self.manager = SceneManager()
        self.manager.load(scene)
        setup_camera(scene.camera, self.config.aspect_ratio)

        configure_tracer(self.config.enable_reflections, self.config.max_recursion_depth)
        configure_shading(self.config.enable_shadows, self.config.enable_texture)
        setup_render_target(self.config.width, self.config.height)
        self._rendered = False

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    @property
    def is_rendered(self) -> bool:
        """Whether the buffer holds a finished render."""
        return self._rendered

    def render(self, callback: ProgressCallback | None = None) -> npt.NDArray[np.float32]:
        """Render the full image, blocking until every band is done.

        Args:
            callback: Optional callable invoked after each row band with
                (finished_bands, total_bands).

        Returns:
            Image of shape (height, width, 3), row 0 at the top, clamped to
            [0, 1].

        Example:
            >>> def progress(done, total):
            ...     print(f"{done}/{total} bands")
            >>> image = tracer.render(callback=progress)
        """
        for done, total in self.render_progressive():
            if callback is not None:
                callback(done, total)
        return self.get_image_numpy()

    def render_progressive(self) -> Generator[tuple[int, int], None, None]:
        """Render band by band, yielding (finished_bands, total_bands).

        Generator alternative to render(callback=...). The image is complete
        once the generator is exhausted.
        """
        clear_render_target()
        self._rendered = False
        logger.info(
            "Rendering %dx%d, %d sample(s), %s",
            self.width,
            self.height,
            self.config.samples,
            "parallel" if self.config.enable_parallelism else "serial",
        )
        start = time.perf_counter()

        yield from dispatch_progressive(self.config)

        self._rendered = True
        logger.info("Rendered %dx%d in %.2fs", self.width, self.height, time.perf_counter() - start)

    def get_raw_image_numpy(self) -> npt.NDArray[np.float32]:
        """Unclamped pixel colours, shape (height, width, 3)."""
        return get_image_numpy()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Rendered image clamped to [0, 1], optionally gamma corrected.

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).

        Returns:
            NumPy array of shape (height, width, 3) with dtype float32.
        """
        image = np.clip(get_image_numpy(), 0.0, 1.0)
        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)
        return image.astype(np.float32)

    def get_depth_numpy(self) -> npt.NDArray[np.int32]:
        """Deepest reflection level per pixel, shape (height, width)."""
        return get_depth_numpy()

    def get_image_uint8(self, gamma: float = 1.0) -> npt.NDArray[np.uint8]:
        """Rendered image as 8-bit RGB."""
        return image_to_uint8(get_image_numpy(), gamma=gamma)

    def save_image(self, filepath: str | Path, gamma: float = 1.0) -> None:
        """Save the rendered image as a PNG.

        Args:
            filepath: Output path.
            gamma: Gamma correction value. Default 1.0, since Phong shading
                already produces display colours.
        """
        save_png_from_array(get_image_numpy(), filepath, gamma=gamma)

    def __repr__(self) -> str:
        return (
            f"RayTracer(width={self.width}, height={self.height}, "
            f"shapes={self.manager.get_shape_count()}, lights={self.manager.get_light_count()}, "
            f"samples={self.config.samples})"
        )


def render_scene(scene: Scene, config: RenderConfig | None = None) -> npt.NDArray[np.float32]:
    """Render a scene in one call.

    Args:
        scene: The scene to render.
        config: Render options. Defaults to RenderConfig().

    Returns:
        Image of shape (height, width, 3) clamped to [0, 1].
    """
    return RayTracer(scene, config).render()
