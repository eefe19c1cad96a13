"""
AtlasCompositor - Packs cell images onto one fixed-size canvas.
"""

import io
import logging
from typing import Optional, Sequence

from PIL import Image

from .config import AtlasConfig


class AtlasCompositor:
    """
    Lays out cell images in row-major order and encodes the canvas as JPEG.

    The i-th image occupies slot i. The canvas is always the full atlas
    size; slots past the last image keep the background colour.
    """

    def __init__(self, config: Optional[AtlasConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or AtlasConfig()
        self.logger = logger or logging.getLogger(__name__)

    def compose(self, cells: Sequence[Image.Image]) -> Image.Image:
        """
        Paste cells onto a new canvas.

        Args:
            cells: Images already resized to the cell size, in slot order

        Returns:
            RGB canvas of atlas_size x atlas_size
        """
        cfg = self.config
        if len(cells) > cfg.capacity:
            raise ValueError(f"{len(cells)} cells exceed atlas capacity {cfg.capacity}")

        canvas = Image.new('RGB', (cfg.atlas_size, cfg.atlas_size), cfg.background)
        for index, cell in enumerate(cells):
            if cell.size != (cfg.cell_width, cfg.cell_height):
                raise ValueError(
                    f"Cell {index} is {cell.size[0]}x{cell.size[1]}, "
                    f"expected {cfg.cell_width}x{cfg.cell_height}"
                )
            canvas.paste(cell, cfg.cell_offset(index))

        self.logger.info(
            f"Composited {len(cells)} of {cfg.capacity} cells "
            f"({cfg.atlas_size}x{cfg.atlas_size})"
        )
        return canvas

    def encode(self, canvas: Image.Image) -> bytes:
        """Encode the canvas as JPEG at the configured quality."""
        output = io.BytesIO()
        canvas.save(output, format='JPEG', quality=self.config.quality, optimize=True)
        return output.getvalue()

    def build(self, cells: Sequence[Image.Image]) -> bytes:
        """Compose and encode in one step."""
        return self.encode(self.compose(cells))
