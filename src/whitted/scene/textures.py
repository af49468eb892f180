"""Texture loading with per-path deduplication.

A TextureStore belongs to one scene. load_or_get() decodes an image the
first time a path is requested and hands back the same Texture object for
every later request of that path, so materials share textures by identity.
Paths are resolved (relative ones against the store's base directory) before
lookup, so "a/../tex.png" and "tex.png" name the same texture.

Texture ids are assigned in load order and double as the texture's slot in
the device-side atlas (see scene.texture_atlas).

Example:
    >>> store = TextureStore(base_dir="textures")
    >>> brick = store.load_or_get("brick.png")
    >>> store.load_or_get("./brick.png") is brick
    True
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.whitted.core.errors import TextureLoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Texture:
    """A decoded RGB image.

    Attributes:
        texture_id: Index of the texture within its store.
        path: Resolved source path, or the name given to an in-memory texture.
        pixels: Read-only float32 array of shape (height, width, 3) in [0, 1].
            Row 0 is the top of the image.
    """

    texture_id: int
    path: str
    pixels: npt.NDArray[np.float32]

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def texel(self, u: float, v: float, repeat_u: float = 1.0, repeat_v: float = 1.0):
        """Nearest texel at (u, v), wrapped into [0, 1).

        Host-side counterpart of scene.texture_atlas.sample_texture, useful
        for checking rendered colours.
        """
        col, row = texel_index(u, v, self.width, self.height, repeat_u, repeat_v)
        return tuple(float(c) for c in self.pixels[row, col])

    def __repr__(self) -> str:
        return f"Texture(id={self.texture_id}, path={self.path!r}, size={self.width}x{self.height})"


def texel_index(
    u: float,
    v: float,
    width: int,
    height: int,
    repeat_u: float = 1.0,
    repeat_v: float = 1.0,
) -> tuple[int, int]:
    """Column and row of the texel that (u, v) maps to.

    UVs are wrapped into [0, 1) first, so u = 1.25 and u = 0.25 select the
    same column. v = 0 is the bottom row of the image.
    """
    fu = u - np.floor(u)
    fv = v - np.floor(v)
    col = int(np.floor(fu * repeat_u * width)) % width
    row_from_bottom = int(np.floor(fv * repeat_v * height)) % height
    return col, height - 1 - row_from_bottom


class TextureStore:
    """Registry of decoded textures keyed by resolved path.

    Attributes:
        base_dir: Directory relative texture paths are resolved against.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self._by_key: dict[str, Texture] = {}
        self._textures: list[Texture] = []

    def _resolve(self, path: str | Path) -> str:
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self.base_dir / p
        return str(p.resolve())

    def load_or_get(self, path: str | Path) -> Texture:
        """Return the texture for `path`, decoding it on first use.

        Args:
            path: Image path, absolute or relative to base_dir.

        Returns:
            The shared Texture for this path.

        Raises:
            TextureLoadError: If the file is missing or cannot be decoded.
        """
        key = self._resolve(path)
        cached = self._by_key.get(key)
        if cached is not None:
            logger.debug("Texture cache hit: %s", key)
            return cached

        if not Path(key).is_file():
            raise TextureLoadError(key, "file not found")
        try:
            with PILImage.open(key) as img:
                pixels = np.asarray(img.convert("RGB"), dtype=np.float32) / 255.0
        except OSError as e:
            raise TextureLoadError(key, str(e)) from e

        texture = self._register(key, pixels)
        logger.debug("Loaded texture %s (%dx%d)", key, texture.width, texture.height)
        return texture

    def add_array(self, name: str, pixels: npt.ArrayLike) -> Texture:
        """Register an in-memory RGB image under `name`.

        Args:
            name: Key for the texture. Adding the same name twice returns the
                first texture.
            pixels: Array of shape (height, width, 3) with values in [0, 1].

        Returns:
            The shared Texture for this name.

        Raises:
            TextureLoadError: If the array has the wrong shape.
        """
        key = f"memory:{name}"
        cached = self._by_key.get(key)
        if cached is not None:
            return cached
        data = np.array(pixels, dtype=np.float32)
        if data.ndim != 3 or data.shape[2] != 3:
            raise TextureLoadError(name, f"expected shape (height, width, 3), got {data.shape}")
        return self._register(key, np.clip(data, 0.0, 1.0))

    def _register(self, key: str, pixels: npt.NDArray[np.float32]) -> Texture:
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise TextureLoadError(key, "image is empty")
        pixels = np.ascontiguousarray(pixels)
        pixels.setflags(write=False)
        texture = Texture(texture_id=len(self._textures), path=key, pixels=pixels)
        self._by_key[key] = texture
        self._textures.append(texture)
        return texture

    def get(self, path: str | Path) -> Texture | None:
        """Look up an already loaded texture without loading it."""
        if str(path) in self._by_key:
            return self._by_key[str(path)]
        return self._by_key.get(self._resolve(path))

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, Path)) and self.get(path) is not None

    def __len__(self) -> int:
        return len(self._textures)

    def __iter__(self) -> Iterator[Texture]:
        return iter(self._textures)

    def __repr__(self) -> str:
        return f"TextureStore(base_dir={str(self.base_dir)!r}, textures={len(self)})"
