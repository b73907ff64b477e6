"""
Image Rendering of Resampled Values

Turns a vector of resampled values into an RGBA image with a matplotlib
colormap and writes it to disk. Rows of the image follow SampleDomain order,
so the first row is the northernmost.
"""

import os
from typing import Optional
import numpy as np
import matplotlib
import matplotlib.image

from .exceptions import InvalidConfigurationError

SUPPORTED_STYLES = ("boxfill",)


class ImageRenderer:
    """
    Colormapped raster renderer.

    Attributes:
        palette: Name of a registered matplotlib colormap
        style: Rendering style, only ``boxfill`` (one colour block per sample)

    Example:
        >>> renderer = ImageRenderer("viridis")
        >>> image = renderer.render(np.arange(6, dtype=np.float32), 3, 2)
        >>> image.shape
        (2, 3, 4)
    """

    def __init__(self, palette: str = "viridis", style: str = "boxfill"):
        if style not in SUPPORTED_STYLES:
            raise InvalidConfigurationError(
                f"Unsupported style {style!r}, expected one of {SUPPORTED_STYLES}")
        try:
            self.colormap = matplotlib.colormaps[palette]
        except KeyError:
            raise InvalidConfigurationError(f"Unknown palette {palette!r}") from None
        self.palette = palette
        self.style = style

    def render(
        self,
        values: np.ndarray,
        width: int,
        height: int,
        vmin: Optional[float] = None,
        vmax: Optional[float] = None
    ) -> np.ndarray:
        """
        Colour a vector of ``width * height`` samples.

        Values are scaled linearly between the finite minimum and maximum
        (or ``vmin``/``vmax`` when given). NaN samples are transparent.

        Returns:
            uint8 RGBA array of shape (height, width, 4)
        """
        values = np.asarray(values, dtype=np.float64)
        if values.size != width * height:
            raise InvalidConfigurationError(
                f"Expected {width * height} values for a {width}x{height} image, got {values.size}")
        grid = values.reshape(height, width)
        finite = np.isfinite(grid)

        if vmin is None or vmax is None:
            if finite.any():
                lo, hi = float(grid[finite].min()), float(grid[finite].max())
            else:
                lo, hi = 0.0, 1.0
            vmin = lo if vmin is None else vmin
            vmax = hi if vmax is None else vmax

        if vmax > vmin:
            scaled = (grid - vmin) / (vmax - vmin)
        else:
            scaled = np.full_like(grid, 0.5)
        scaled = np.clip(np.where(finite, scaled, 0.0), 0.0, 1.0)

        image = self.colormap(scaled, bytes=True)
        image[~finite, 3] = 0
        return image

    def write(self, image: np.ndarray, path: str, fmt: str = "png") -> None:
        """Write an RGBA image to ``path``."""
        matplotlib.image.imsave(path, image, format=fmt)

    def render_to_file(self, values: np.ndarray, width: int, height: int, path: str) -> None:
        """Render and write, replacing any existing file at ``path``."""
        if os.path.exists(path):
            os.remove(path)
        self.write(self.render(values, width, height), path)
