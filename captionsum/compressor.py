"""
Re-encode uploaded images as JPEG close to a target size.

The default strategy binary-searches the JPEG quality in [10, 95] and returns
whatever was encoded last; it is approximate, so output may land up to about
``TOLERANCE_KB`` over or under the target. The ``linear`` strategy steps the
quality down from 80 in fixed decrements instead.
"""
from __future__ import annotations
import io
import logging
from dataclasses import dataclass
from contextlib import contextmanager
from typing import Callable, ContextManager, Dict, Iterator, Optional, Protocol, Tuple

from PIL import Image, UnidentifiedImageError

from captionsum.errors import ImageDecodeError

logger = logging.getLogger(__name__)

MAX_DIMENSION = 1920
MIN_QUALITY = 10
MAX_QUALITY = 95
TOLERANCE_KB = 10

LINEAR_START_QUALITY = 80
LINEAR_STEP = 5

OUTPUT_MIME = "image/jpeg"

# quality -> encoded bytes
Encoder = Callable[[int], bytes]


@dataclass(frozen=True)
class ImageAsset:
    data: bytes
    width: int
    height: int
    mime_type: str


@dataclass(frozen=True)
class CompressionResult:
    data: bytes
    quality: int
    width: int
    height: int
    attempts: int
    strategy: str
    mime_type: str = OUTPUT_MIME

    @property
    def size_kb(self) -> float:
        return len(self.data) / 1024


class ImageCodec(Protocol):
    def decode(self, data: bytes) -> ImageAsset: ...

    def encoder(self, asset: ImageAsset, width: int, height: int) -> ContextManager[Encoder]:
        """Prepare ``asset`` at ``width`` x ``height``; the yielded callable encodes it at a quality."""
        ...


# ---------------------------
# Pillow codec
# ---------------------------
class PillowCodec:
    def decode(self, data: bytes) -> ImageAsset:
        img = _open(data)
        try:
            mime = Image.MIME.get(img.format or "", "application/octet-stream")
            return ImageAsset(data=data, width=img.width, height=img.height, mime_type=mime)
        finally:
            img.close()

    @contextmanager
    def encoder(self, asset: ImageAsset, width: int, height: int) -> Iterator[Encoder]:
        src = img = _open(asset.data)
        try:
            # JPEG has no alpha / palette
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            if img.size != (width, height):
                img = img.resize((width, height), Image.Resampling.LANCZOS)

            def encode(quality: int) -> bytes:
                buf = io.BytesIO()
                img.save(buf, format="JPEG", quality=quality)
                return buf.getvalue()

            yield encode
        finally:
            img.close()
            src.close()


def _open(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e
    return img


# ---------------------------
# geometry
# ---------------------------
def scale_to_fit(width: int, height: int, max_dim: int = MAX_DIMENSION) -> Tuple[int, int]:
    """Uniformly shrink (never enlarge) so neither side exceeds ``max_dim``."""
    if width <= max_dim and height <= max_dim:
        return width, height
    scale = min(max_dim / width, max_dim / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


# ---------------------------
# strategies
# ---------------------------
def binary_search_quality(encode: Encoder, target_kb: float) -> Tuple[bytes, int, int]:
    """Returns (last buffer, its quality, attempts)."""
    lo, hi = MIN_QUALITY, MAX_QUALITY
    buf, quality, attempts = b"", MIN_QUALITY, 0
    while lo <= hi:
        quality = (lo + hi) // 2
        buf = encode(quality)
        attempts += 1
        size_kb = len(buf) / 1024
        logger.debug("quality=%d size=%.1fKB target=%sKB", quality, size_kb, target_kb)
        if size_kb <= target_kb:
            lo = quality + 1
        else:
            hi = quality - 1
        if abs(size_kb - target_kb) <= TOLERANCE_KB:
            break
    return buf, quality, attempts


def linear_step_down(encode: Encoder, target_kb: float) -> Tuple[bytes, int, int]:
    quality = LINEAR_START_QUALITY
    buf = encode(quality)
    attempts = 1
    while len(buf) / 1024 > target_kb and quality > MIN_QUALITY:
        quality = max(MIN_QUALITY, quality - LINEAR_STEP)
        buf = encode(quality)
        attempts += 1
    return buf, quality, attempts


STRATEGIES: Dict[str, Callable[[Encoder, float], Tuple[bytes, int, int]]] = {
    "binary": binary_search_quality,
    "linear": linear_step_down,
}


class Compressor:
    def __init__(self, codec: Optional[ImageCodec] = None, strategy: str = "binary",
                 max_dimension: int = MAX_DIMENSION):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown compression strategy: {strategy}")
        self.codec = codec or PillowCodec()
        self.strategy = strategy
        self.max_dimension = max_dimension

    def compress(self, data: bytes, target_kb: float) -> CompressionResult:
        if target_kb <= 0:
            raise ValueError("target_kb must be positive")

        asset = self.codec.decode(data)
        width, height = scale_to_fit(asset.width, asset.height, self.max_dimension)
        if (width, height) != (asset.width, asset.height):
            logger.info("Downscaling %dx%d -> %dx%d", asset.width, asset.height, width, height)

        with self.codec.encoder(asset, width, height) as encode:
            buf, quality, attempts = STRATEGIES[self.strategy](encode, target_kb)
        logger.info(
            "Compressed %.1fKB -> %.1fKB (quality=%d, %d attempts, %s)",
            len(data) / 1024, len(buf) / 1024, quality, attempts, self.strategy,
        )
        return CompressionResult(
            data=buf, quality=quality, width=width, height=height,
            attempts=attempts, strategy=self.strategy,
        )
