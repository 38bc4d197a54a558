"""
Unit Tests for Image Encoder
============================

Format selection, quality handling and the lossless intermediate.
"""

import io
from unittest.mock import patch

import pytest
from PIL import Image, ImageChops, ImageStat

from url2img.core.rendering.encoder import (
    ImageEncodeError,
    encode,
    from_lossless_intermediate,
    hex_encode,
    to_lossless_intermediate,
)


def mean_error(original: Image.Image, encoded: bytes) -> float:
    decoded = Image.open(io.BytesIO(encoded)).convert("RGB")
    diff = ImageChops.difference(original, decoded)
    return sum(ImageStat.Stat(diff).mean) / 3


class TestPNGEncoding:
    """PNG output is lossless and ignores quality."""

    def test_png_is_lossless(self, gradient_image):
        data = encode(gradient_image, "png", 80)

        decoded = Image.open(io.BytesIO(data))
        assert decoded.format == "PNG"
        assert decoded.size == gradient_image.size
        assert ImageChops.difference(gradient_image, decoded.convert("RGB")).getbbox() is None

    def test_png_quality_has_no_effect(self, gradient_image):
        assert encode(gradient_image, "png", 1) == encode(gradient_image, "png", 100)

    @pytest.mark.parametrize("name", ["PNG", "Png", "png"])
    def test_png_case_insensitive(self, gradient_image, name):
        assert encode(gradient_image, name, 50) == encode(gradient_image, "png", 50)


class TestJPEGEncoding:
    """JPEG output uses quality as the codec quality factor."""

    @pytest.mark.parametrize("name", ["jpeg", "JPEG", "jpg", "JPG"])
    def test_jpeg_aliases(self, gradient_image, name):
        data = encode(gradient_image, name, 85)
        assert data[:3] == b"\xff\xd8\xff"
        assert Image.open(io.BytesIO(data)).format == "JPEG"

    def test_high_quality_has_less_error(self, gradient_image):
        high = encode(gradient_image, "jpeg", 95)
        low = encode(gradient_image, "jpeg", 1)

        assert mean_error(gradient_image, high) < mean_error(gradient_image, low)
        assert len(high) > len(low)

    def test_rgba_bitmap_is_flattened(self):
        image = Image.new("RGBA", (10, 10), (255, 0, 0, 128))
        data = encode(image, "jpg", 90)
        assert Image.open(io.BytesIO(data)).mode == "RGB"


class TestWEBPEncoding:
    """WEBP output is lossy with quality as a float."""

    @pytest.mark.parametrize("name", ["webp", "WEBP", "WebP"])
    def test_webp_container(self, gradient_image, name):
        data = encode(gradient_image, name, 75)
        assert data[:4] == b"RIFF"
        assert data[8:12] == b"WEBP"

    def test_webp_is_not_lossless(self, gradient_image):
        with patch.object(Image.Image, "save", autospec=True) as mock_save:
            encode(gradient_image, "webp", 42)

        kwargs = mock_save.call_args.kwargs
        assert kwargs["format"] == "WEBP"
        assert kwargs["lossless"] is False
        assert kwargs["quality"] == 42.0
        assert isinstance(kwargs["quality"], float)


class TestUnsupportedFormats:
    """Unrecognised formats produce an empty result instead of an error."""

    @pytest.mark.parametrize("name", ["gif", "bmp", "", "tiff", "svg", " png", "png\n", "\tjpeg "])
    def test_unsupported_format_is_empty(self, gradient_image, name):
        data = encode(gradient_image, name, 80)
        assert data == b""
        assert hex_encode(data) == ""

    def test_none_format_is_empty(self, gradient_image):
        assert encode(gradient_image, None, 80) == b""


class TestEncoderErrors:
    """Codec rejections are reported as ImageEncodeError."""

    def test_codec_error_is_wrapped(self, gradient_image):
        with patch.object(Image.Image, "save", side_effect=OSError("encoder error -2")):
            with pytest.raises(ImageEncodeError, match="jpeg encoding failed"):
                encode(gradient_image, "jpeg", 80)

    def test_value_error_is_wrapped(self, gradient_image):
        with patch.object(Image.Image, "save", side_effect=ValueError("bad quality")):
            with pytest.raises(ImageEncodeError, match="webp encoding failed"):
                encode(gradient_image, "webp", 500)


class TestLosslessIntermediate:
    """Bitmaps survive the intermediate round trip unchanged."""

    def test_round_trip_preserves_pixels(self, gradient_image):
        restored = from_lossless_intermediate(to_lossless_intermediate(gradient_image))
        assert restored.size == gradient_image.size
        assert ImageChops.difference(gradient_image, restored.convert("RGB")).getbbox() is None

    def test_garbage_intermediate_raises(self):
        with pytest.raises(ImageEncodeError, match="Intermediate decode failed"):
            from_lossless_intermediate(b"not an image")

    def test_hex_encode(self):
        assert hex_encode(b"\x89PNG") == "89504e47"
