"""
OCR Image Preprocessing.

Page bitmaps are prepared for recognition in four fixed steps:
    1. grayscale conversion
    2. contrast stretch around mid-gray (numpy)
    3. 3x3 median filter for speckle noise
    4. sharpening convolution

Author: ML Engineering Team
"""

import numpy as np
from PIL import Image, ImageFilter

from src.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

SHARPEN_KERNEL = ImageFilter.Kernel(
    size=(3, 3),
    kernel=[0, -1, 0, -1, 5, -1, 0, -1, 0],
    scale=1,
)


class OcrImagePreprocessor:
    """
    Grayscale, contrast, denoise and sharpen a rendered page.

    Attributes:
        contrast_factor: Multiplier applied to the distance from mid-gray.

    Example:
        >>> preprocessor = OcrImagePreprocessor()
        >>> prepared = preprocessor.process(page_image)
        >>> prepared.mode
        'L'
    """

    def __init__(self, contrast_factor: float = 1.2) -> None:
        self.contrast_factor = contrast_factor

    def process(self, image: Image.Image) -> Image.Image:
        """
        Run the full preprocessing chain.

        Args:
            image: Rendered page in any Pillow mode.

        Returns:
            Preprocessed 8-bit grayscale image.
        """
        image = self.to_grayscale(image)
        image = self.enhance_contrast(image)
        image = image.filter(ImageFilter.MedianFilter(size=3))
        image = image.filter(SHARPEN_KERNEL)
        logger.debug(f"Preprocessed page image {image.width}x{image.height}")
        return image

    @staticmethod
    def to_grayscale(image: Image.Image) -> Image.Image:
        """Convert to 8-bit grayscale, flattening transparency onto white."""
        if image.mode in ('RGBA', 'LA', 'P'):
            image = image.convert('RGBA')
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(image, mask=image.split()[-1])
            image = background
        if image.mode != 'L':
            image = image.convert('L')
        return image

    def enhance_contrast(self, image: Image.Image) -> Image.Image:
        """Apply (value - 128) * factor + 128, clipped to 0-255."""
        pixels = np.asarray(image, dtype=np.float32)
        pixels = (pixels - 128.0) * self.contrast_factor + 128.0
        pixels = np.clip(pixels, 0, 255).astype(np.uint8)
        return Image.fromarray(pixels)
