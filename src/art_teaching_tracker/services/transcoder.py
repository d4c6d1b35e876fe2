"""Image transcoding for stored photos."""

from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from art_teaching_tracker.domain.photos import DecodeError, PhotoProfile

JPEG_BACKGROUND = (255, 255, 255)


def transcode(input_bytes: bytes, max_dimension: int, quality: float) -> bytes:
    """Decode an image, fit it within max_dimension and re-encode as JPEG.

    The longer side of an oversized image becomes exactly ``max_dimension``;
    smaller images keep their size. ``quality`` uses a 0-1 scale.
    """
    if max_dimension <= 0:
        raise ValueError("max_dimension must be positive")
    if not 0.0 <= quality <= 1.0:
        raise ValueError("quality must be between 0 and 1")

    image = _decode(input_bytes)
    image = _flatten(image)
    target = fit_within(image.size, max_dimension)
    if target != image.size:
        image = image.resize(target, Image.Resampling.LANCZOS)

    output = BytesIO()
    image.save(output, format="JPEG", quality=_jpeg_quality(quality), optimize=True)
    return output.getvalue()


def transcode_for_profile(input_bytes: bytes, profile: PhotoProfile) -> bytes:
    """Transcode using a named profile's parameters."""
    return transcode(input_bytes, profile.max_dimension, profile.quality)


def fit_within(size: tuple[int, int], max_dimension: int) -> tuple[int, int]:
    """Return a size whose longer side is at most max_dimension."""
    width, height = size
    longest = max(width, height)
    if longest <= max_dimension:
        return size
    scale = max_dimension / longest
    if width >= height:
        return max_dimension, max(1, round(height * scale))
    return max(1, round(width * scale)), max_dimension


def _decode(input_bytes: bytes) -> Image.Image:
    if not input_bytes:
        raise DecodeError("Photo could not be processed: empty input")
    try:
        image = Image.open(BytesIO(input_bytes))
        image.load()
        return ImageOps.exif_transpose(image)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as exc:
        # Plugins report some malformed headers as ValueError or SyntaxError.
        raise DecodeError(f"Photo could not be processed: {exc}") from exc


def _flatten(image: Image.Image) -> Image.Image:
    """Convert to RGB, compositing transparency onto white."""
    if image.mode in {"RGBA", "LA"} or (
        image.mode == "P" and "transparency" in image.info
    ):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, JPEG_BACKGROUND)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def _jpeg_quality(quality: float) -> int:
    return min(100, max(1, round(quality * 100)))
