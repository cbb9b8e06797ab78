"""Image resizing and re-encoding for upload.

Re-encoding through Pillow drops EXIF and other embedded metadata; the
EXIF orientation is applied to the pixels first so the result stays upright.
"""

import base64
import io
import math
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from .transport import ApiResult, ErrorKind

PRESERVED_MIME_TYPES = ("image/png", "image/jpeg", "image/webp")

# Image.info entries that encoders would otherwise carry into the output
METADATA_KEYS = ("exif", "icc_profile", "xmp", "XML:com.adobe.xmp", "comment")

_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

_MIME_BY_PIL_FORMAT = {fmt: mime for mime, fmt in _PIL_FORMATS.items()}


@dataclass(frozen=True)
class EncodedAsset:
    """Result of encoding an image for upload."""

    base64: str
    mime: str
    ext: str
    width: int
    height: int


def ext_from_mime(mime: str) -> str:
    """File extension (without dot) for an output media type."""
    if mime == "image/png":
        return "png"
    if mime == "image/webp":
        return "webp"
    return "jpg"


def pick_output_mime(input_mime: str) -> str:
    """Keep PNG, JPEG and WEBP; everything else becomes JPEG."""
    if input_mime in PRESERVED_MIME_TYPES:
        return input_mime
    return "image/jpeg"


def scaled_size(width: int, height: int, max_size: int) -> tuple[int, int]:
    """Fit (width, height) inside max_size x max_size, never upscaling."""
    scale = min(1.0, max_size / max(width, height))
    # Round half up; each side is at least one pixel
    return (
        max(1, math.floor(width * scale + 0.5)),
        max(1, math.floor(height * scale + 0.5)),
    )


def resize_and_strip_metadata(
    data: bytes,
    media_type: str | None = None,
    max_size: int = 1000,
    quality: float = 0.9,
) -> ApiResult[EncodedAsset]:
    """Downscale an image and re-encode it as base64.

    Args:
        data: Raw image file bytes
        media_type: Declared media type of the file (detected from the
            image itself if not given)
        max_size: Maximum width and height of the output
        quality: Lossy quality factor between 0 and 1 (JPEG only)

    Returns:
        ApiResult with the encoded payload, or an ``encode-failure``
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            detected = _MIME_BY_PIL_FORMAT.get(source.format or "", "")
            image = ImageOps.exif_transpose(source)

        for key in METADATA_KEYS:
            image.info.pop(key, None)

        out_mime = pick_output_mime(media_type or detected)
        width, height = scaled_size(image.width, image.height, max_size)
        if (width, height) != image.size:
            image = image.resize((width, height), Image.Resampling.LANCZOS)

        save_kwargs: dict[str, int] = {}
        if out_mime == "image/jpeg":
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            save_kwargs["quality"] = round(quality * 100)

        buffer = io.BytesIO()
        image.save(buffer, format=_PIL_FORMATS[out_mime], **save_kwargs)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        return ApiResult.failure(ErrorKind.ENCODE_FAILURE, f"Could not process image: {e}")

    return ApiResult.success(
        EncodedAsset(
            base64=base64.b64encode(buffer.getvalue()).decode("ascii"),
            mime=out_mime,
            ext=ext_from_mime(out_mime),
            width=width,
            height=height,
        )
    )
