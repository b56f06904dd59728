"""
Pillow-backed resize/encode used for thumbnails and resize-on-upload.
"""
import io
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from apps.media.errors import DerivationError

JPEG_QUALITY = 90

# Preferred output for a few source formats; anything else Pillow cannot write becomes PNG
_WRITE_FALLBACK = {"MPO": "JPEG", "ICO": "PNG", "PCX": "PNG"}

PNG_MODES = ("1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA")


class ImageCodec:
    """Resize and re-encode image bytes, keeping the source format where possible"""

    def _open(self, data: bytes) -> Image.Image:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
            return img
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            # Pillow signals unreadable/truncated input with these
            raise DerivationError() from e

    def _encode(self, img: Image.Image, format_str: str) -> bytes:
        format_str = _WRITE_FALLBACK.get(format_str, format_str)
        if format_str not in Image.SAVE:
            format_str = "PNG"
        buffer = io.BytesIO()
        save_kwargs = {}
        if format_str == "JPEG":
            if img.mode not in ("RGB", "L", "CMYK"):
                img = img.convert("RGB")
            save_kwargs = {"quality": JPEG_QUALITY}
        elif format_str == "PNG" and img.mode not in PNG_MODES:
            img = img.convert("RGBA")
        try:
            img.save(buffer, format=format_str, **save_kwargs)
        except (OSError, KeyError, ValueError) as e:
            raise DerivationError() from e
        return buffer.getvalue()

    @staticmethod
    def _bounded_size(
        size: Tuple[int, int], width: Optional[int], height: Optional[int]
    ) -> Tuple[int, int]:
        """Largest size inside the width/height box keeping aspect ratio, never upscaled"""
        src_w, src_h = size
        scales = [1.0]
        if width:
            scales.append(width / src_w)
        if height:
            scales.append(height / src_h)
        scale = min(scales)
        return max(1, round(src_w * scale)), max(1, round(src_h * scale))

    def resize(
        self,
        data: bytes,
        width: Optional[int] = 220,
        height: Optional[int] = None,
        keep_ratio: bool = True,
    ) -> bytes:
        """
        Resize image bytes.

        keep_ratio=True bounds the image by width/height without upscaling and
        returns the original bytes when the result would be larger.
        keep_ratio=False crops and scales to exactly fill width x height.

        Raises:
            DerivationError: If the bytes are not a readable image
        """
        img = self._open(data)
        format_str = img.format or "PNG"

        if keep_ratio:
            target = self._bounded_size(img.size, width, height)
            if target != img.size:
                img = img.resize(target, Image.Resampling.LANCZOS)
        else:
            box = (width or height, height or width)
            if not box[0]:
                raise ValueError("A width or height is required to fit an image")
            img = ImageOps.fit(img, box, Image.Resampling.LANCZOS)

        encoded = self._encode(img, format_str)

        # Not worth storing a "thumbnail" that is bigger than its source
        if keep_ratio and len(encoded) > len(data):
            return data

        return encoded
