"""
Image Encoder
=============

Pillow-based encoding of captured bitmaps into PNG, JPEG or WEBP bytes.
"""

from typing import Optional
import io

from PIL import Image  # type: ignore

from url2img.models.schemas import ImageFormat

INTERMEDIATE_FORMAT = "PNG"


class ImageEncodeError(Exception):
    """Exception raised when the image codec rejects a bitmap or its options."""

    pass


def encode(image: Image.Image, fmt: Optional[str], quality: int) -> bytes:
    """
    Encode a bitmap into the requested format.

    PNG output ignores quality. JPEG receives quality as its quality factor,
    WEBP receives it as a float with lossless disabled. Values outside 0-100
    are passed through for the codec to clamp or reject.

    Args:
        image: Bitmap to encode
        fmt: Case-insensitive format name (png, jpeg, jpg, webp)
        quality: Encoder quality

    Returns:
        Encoded image bytes, empty for unsupported formats

    Raises:
        ImageEncodeError: If the codec rejects the image or options
    """
    image_format = ImageFormat.parse(fmt)
    if image_format is None:
        return b""

    output = io.BytesIO()
    try:
        if image_format is ImageFormat.PNG:
            image.save(output, format="PNG")
        elif image_format is ImageFormat.JPEG:
            if image.mode != "RGB":
                image = image.convert("RGB")
            image.save(output, format="JPEG", quality=quality)
        else:
            image.save(output, format="WEBP", quality=float(quality), lossless=False)
    except (OSError, ValueError) as e:
        raise ImageEncodeError(f"{image_format.value} encoding failed: {e}") from e

    return output.getvalue()


def to_lossless_intermediate(image: Image.Image) -> bytes:
    """Serialize a bitmap through the lossless intermediate format."""
    output = io.BytesIO()
    image.save(output, format=INTERMEDIATE_FORMAT)
    return output.getvalue()


def from_lossless_intermediate(data: bytes) -> Image.Image:
    """
    Decode an intermediate buffer back into a fully loaded bitmap.

    Raises:
        ImageEncodeError: If the buffer is not a decodable image
    """
    try:
        image = Image.open(io.BytesIO(data), formats=[INTERMEDIATE_FORMAT])
        image.load()
    except (OSError, ValueError) as e:
        raise ImageEncodeError(f"Intermediate decode failed: {e}") from e
    return image


def hex_encode(data: bytes) -> str:
    return data.hex()
