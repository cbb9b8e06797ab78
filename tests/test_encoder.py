"""Tests for image encoding."""

import base64
import io

from PIL import Image

from blipper.core.encoder import (
    ext_from_mime,
    pick_output_mime,
    resize_and_strip_metadata,
    scaled_size,
)
from blipper.core.transport import ErrorKind
from conftest import make_image


def decode(payload: str) -> Image.Image:
    image = Image.open(io.BytesIO(base64.b64decode(payload)))
    image.load()
    return image


def exif_bytes(orientation: int | None = None) -> bytes:
    exif = Image.Exif()
    exif[0x010E] = "holiday snapshot"  # ImageDescription
    if orientation is not None:
        exif[0x0112] = orientation
    return exif.tobytes()


class TestScaledSize:
    """Tests for the fit-inside computation."""

    def test_landscape_downscaled(self) -> None:
        assert scaled_size(2000, 1000, 1000) == (1000, 500)

    def test_portrait_downscaled(self) -> None:
        assert scaled_size(1000, 3000, 1000) == (333, 1000)

    def test_small_image_unchanged(self) -> None:
        assert scaled_size(400, 300, 1000) == (400, 300)

    def test_rounds_half_up(self) -> None:
        assert scaled_size(2000, 1001, 1000) == (1000, 501)

    def test_never_below_one_pixel(self) -> None:
        assert scaled_size(5000, 1, 1000) == (1000, 1)


class TestMimeSelection:
    """Tests for output format selection."""

    def test_preserved_types(self) -> None:
        for mime in ("image/png", "image/jpeg", "image/webp"):
            assert pick_output_mime(mime) == mime

    def test_other_types_become_jpeg(self) -> None:
        for mime in ("image/gif", "image/bmp", "image/heic", ""):
            assert pick_output_mime(mime) == "image/jpeg"

    def test_extensions(self) -> None:
        assert ext_from_mime("image/png") == "png"
        assert ext_from_mime("image/webp") == "webp"
        assert ext_from_mime("image/jpeg") == "jpg"


class TestResizeAndStripMetadata:
    """Tests for resize_and_strip_metadata."""

    def test_large_png_downscaled(self) -> None:
        result = resize_and_strip_metadata(make_image(2000, 1000), "image/png")

        assert result.ok
        asset = result.value
        assert (asset.width, asset.height) == (1000, 500)
        assert asset.mime == "image/png"
        assert asset.ext == "png"
        image = decode(asset.base64)
        assert image.format == "PNG"
        assert image.size == (1000, 500)

    def test_small_image_keeps_dimensions(self) -> None:
        result = resize_and_strip_metadata(make_image(400, 300, fmt="JPEG"), "image/jpeg")

        assert (result.value.width, result.value.height) == (400, 300)
        assert result.value.ext == "jpg"
        assert decode(result.value.base64).format == "JPEG"

    def test_media_type_detected_when_missing(self) -> None:
        result = resize_and_strip_metadata(make_image(10, 10, fmt="WEBP"))

        assert result.value.mime == "image/webp"
        assert result.value.ext == "webp"

    def test_gif_becomes_jpeg(self) -> None:
        result = resize_and_strip_metadata(make_image(50, 40, fmt="GIF"), "image/gif")

        assert result.value.mime == "image/jpeg"
        assert result.value.ext == "jpg"
        assert decode(result.value.base64).format == "JPEG"

    def test_bmp_becomes_jpeg(self) -> None:
        result = resize_and_strip_metadata(make_image(50, 40, fmt="BMP"), "image/bmp")

        assert result.value.mime == "image/jpeg"

    def test_transparent_image_flattened_for_jpeg(self) -> None:
        data = make_image(30, 30, fmt="PNG", mode="RGBA")

        result = resize_and_strip_metadata(data, "image/tiff")

        assert result.ok
        assert decode(result.value.base64).mode == "RGB"

    def test_exif_removed(self) -> None:
        data = make_image(100, 80, fmt="JPEG", exif=exif_bytes())
        assert "exif" in Image.open(io.BytesIO(data)).info

        result = resize_and_strip_metadata(data, "image/jpeg")

        image = decode(result.value.base64)
        assert "exif" not in image.info
        assert len(image.getexif()) == 0

    def test_orientation_applied_before_stripping(self) -> None:
        # Orientation 6: stored landscape, displayed rotated 90 degrees
        data = make_image(200, 100, fmt="JPEG", exif=exif_bytes(orientation=6))

        result = resize_and_strip_metadata(data, "image/jpeg")

        assert (result.value.width, result.value.height) == (100, 200)
        assert decode(result.value.base64).size == (100, 200)

    def test_custom_max_size(self) -> None:
        result = resize_and_strip_metadata(make_image(600, 300), "image/png", max_size=300)

        assert (result.value.width, result.value.height) == (300, 150)

    def test_not_an_image(self) -> None:
        result = resize_and_strip_metadata(b"definitely not pixels", "image/png")

        assert not result.ok
        assert result.error_kind == ErrorKind.ENCODE_FAILURE

