"""Device-side texture storage and nearest-neighbour sampling.

All textures of the active scene are packed into one flat texel field. Each
texture slot records where its texels start and its size. Slots are filled in
TextureStore order, so a Texture's texture_id is its slot.

Example:
    >>> from src.whitted.scene.texture_atlas import clear_textures, upload_texture
    >>> clear_textures()
    >>> for texture in scene.textures:
    ...     upload_texture(texture)
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from src.whitted.scene.textures import Texture

vec2 = tm.vec2
vec3 = tm.vec3

# Maximum number of textures and total texels across all textures
MAX_TEXTURES = 64
MAX_TEXELS = 1 << 22

# Packed RGB texels, row-major per texture, row 0 at the top of the image
_texels = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXELS)

# Per-texture layout
_texture_offsets = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
_texture_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
_texture_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)

num_textures = ti.field(dtype=ti.i32, shape=())
_texel_cursor = ti.field(dtype=ti.i32, shape=())


def clear_textures() -> None:
    """Forget all uploaded textures."""
    num_textures[None] = 0
    _texel_cursor[None] = 0


@ti.kernel
def _copy_texels(flat: ti.types.ndarray(dtype=ti.f32, ndim=2), offset: ti.i32, count: ti.i32):
    for i in range(count):
        _texels[offset + i] = vec3(flat[i, 0], flat[i, 1], flat[i, 2])


def upload_texture(texture: Texture) -> int:
    """Copy a texture into the atlas.

    Args:
        texture: Texture to upload.

    Returns:
        The texture's slot.

    Raises:
        RuntimeError: If the atlas is out of slots or texel storage.
    """
    slot = num_textures[None]
    if slot >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")

    count = texture.width * texture.height
    offset = _texel_cursor[None]
    if offset + count > MAX_TEXELS:
        raise RuntimeError(
            f"Texture storage exhausted: {texture.path} needs {count} texels, "
            f"{MAX_TEXELS - offset} left"
        )

    flat = np.ascontiguousarray(texture.pixels.reshape(count, 3), dtype=np.float32)
    _copy_texels(flat, offset, count)

    _texture_offsets[slot] = offset
    _texture_widths[slot] = texture.width
    _texture_heights[slot] = texture.height
    _texel_cursor[None] = offset + count
    num_textures[None] = slot + 1
    return slot


def get_texture_count() -> int:
    return int(num_textures[None])


@ti.func
def _wrap_index(x: ti.f32, size: ti.i32) -> ti.i32:
    i = ti.cast(ti.floor(x), ti.i32) % size
    if i < 0:
        i += size
    return i


@ti.func
def sample_texture(texture_id: ti.i32, uv: vec2, repeat_u: ti.f32, repeat_v: ti.f32) -> vec3:
    """Nearest-neighbour texel lookup with wrap-around.

    UVs are wrapped into [0, 1) before lookup, so u = 1.25 samples the same
    texel as u = 0.25. v = 0 is the bottom row of the image.

    Args:
        texture_id: Texture slot.
        uv: Texture coordinate.
        repeat_u: Texture repetitions across u.
        repeat_v: Texture repetitions across v.

    Returns:
        The texel colour, or black for an invalid slot.
    """
    color = vec3(0.0, 0.0, 0.0)
    if (texture_id >= 0) and (texture_id < num_textures[None]):
        w = _texture_widths[texture_id]
        h = _texture_heights[texture_id]
        fu = uv.x - ti.floor(uv.x)
        fv = uv.y - ti.floor(uv.y)
        col = _wrap_index(fu * repeat_u * ti.cast(w, ti.f32), w)
        row = h - 1 - _wrap_index(fv * repeat_v * ti.cast(h, ti.f32), h)
        color = _texels[_texture_offsets[texture_id] + row * w + col]
    return color
