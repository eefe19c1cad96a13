"""
ThumbnailResizer - Normalizes source thumbnails to atlas cell size.
"""

import io
import logging
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import UnprocessableImageError


class ThumbnailResizer:
    """
    Resizes images to an exact cell size using Pillow.

    Crop-to-fill: the image is scaled until it covers the cell, then
    center-cropped on the overflowing dimension. No letterboxing.
    """

    def __init__(
        self,
        width: int = 128,
        height: int = 72,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize resizer.

        Args:
            width: Cell width in pixels (default: 128)
            height: Cell height in pixels (default: 72)
            logger: Optional logger instance
        """
        self.width = width
        self.height = height
        self.logger = logger or logging.getLogger(__name__)

    @property
    def size(self):
        return self.width, self.height

    def resize(self, image_data: bytes) -> Image.Image:
        """
        Produce a cell image from raw image bytes.

        Args:
            image_data: Encoded source image

        Returns:
            RGB image of exactly (width, height)

        Raises:
            UnprocessableImageError: If the bytes are not a decodable image
        """
        try:
            img = Image.open(io.BytesIO(image_data))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise UnprocessableImageError(f"Cannot decode image: {e}") from e

        try:
            img = self._convert_color_mode(img)
            return ImageOps.fit(
                img,
                self.size,
                method=Image.Resampling.LANCZOS,
                centering=(0.5, 0.5),
            )
        except (OSError, ValueError) as e:
            raise UnprocessableImageError(f"Cannot resize image: {e}") from e

    def _convert_color_mode(self, img: Image.Image) -> Image.Image:
        """Flatten transparency onto white and convert to RGB."""
        if img.mode == 'P':
            img = img.convert('RGBA')
        if img.mode in ('RGBA', 'LA'):
            if img.mode == 'LA':
                img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode != 'RGB':
            return img.convert('RGB')
        return img
