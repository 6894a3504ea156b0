# core/fingerprint.py

import math
from pathlib import Path
from typing import Union

import imagehash
import numpy as np
from PIL import Image

from core.exceptions import DecodeError

# Fixed parameters of the fingerprint. Changing any of them invalidates
# previously computed fingerprints.
SAMPLE_SIZE = 32
DCT_SIZE = 8
HASH_BITS = DCT_SIZE * DCT_SIZE
RESAMPLE_FILTER = Image.Resampling.BILINEAR
WIDE_MAX = 65535


def _dct_basis(n: int = SAMPLE_SIZE, k: int = DCT_SIZE) -> np.ndarray:
    """Cosine basis rows cos((2i+1)u*pi/2n) for u < k, i < n"""
    u = np.arange(k, dtype=np.float64).reshape(-1, 1)
    i = np.arange(n, dtype=np.float64).reshape(1, -1)
    return np.cos((2 * i + 1) * u * math.pi / (2 * n))


_BASIS = _dct_basis()
_ALPHA = np.array([1 / math.sqrt(2)] + [1.0] * (DCT_SIZE - 1))
_SCALE = (2 / SAMPLE_SIZE) * np.outer(_ALPHA, _ALPHA)


def low_frequency_dct(pixels: np.ndarray) -> np.ndarray:
    """
    Lowest 8x8 coefficients of the orthonormal 2-D DCT-II of a 32x32 grid

    C(u,v) = 2/N * a(u) * a(v) * sum_ij p(i,j) cos((2i+1)u*pi/2N) cos((2j+1)v*pi/2N)
    """
    pixels = np.asarray(pixels, dtype=np.float64)
    if pixels.shape != (SAMPLE_SIZE, SAMPLE_SIZE):
        raise ValueError(
            f"Expected a {SAMPLE_SIZE}x{SAMPLE_SIZE} grid, got {pixels.shape}"
        )
    return _SCALE * (_BASIS @ pixels @ _BASIS.T)


def _to_8bit(image: Image.Image) -> Image.Image:
    """
    Scale a 32-bit integer or float image down to 8-bit luminance

    Integer modes hold 16-bit samples (0..65535). Float images are taken as
    0..1 when no sample exceeds 1, otherwise as 0..255.
    """
    values = np.asarray(image, dtype=np.float64)
    if image.mode == 'F':
        if values.size and values.max() <= 1.0:
            values = values * 255
    else:
        values = values * 255 / WIDE_MAX
    return Image.fromarray(np.clip(np.round(values), 0, 255).astype(np.uint8))


def fingerprint(image: Image.Image) -> imagehash.ImageHash:
    """
    Compute the 64-bit perceptual fingerprint of a still image

    1. Resample to 32x32 (bilinear)
    2. Convert to luminance
    3. Keep the lowest 8x8 DCT coefficients
    4. Flatten row-major (index = u*8 + v)
    5. Threshold every coefficient against the median of all 64

    Bit i is set when coefficient i is strictly greater than the median.
    The median is the upper middle element (index 32) of the sorted
    coefficients.
    """
    try:
        # convert('L') clips wide samples at 255 instead of scaling them
        if image.mode == 'F' or image.mode.startswith('I'):
            image = _to_8bit(image)
        # Pillow resizes '1' and 'P' images with nearest neighbour only
        elif image.mode in ('1', 'P'):
            image = image.convert('RGB')
        small = image.resize((SAMPLE_SIZE, SAMPLE_SIZE), RESAMPLE_FILTER)
        gray = small.convert('L')
        pixels = np.asarray(gray, dtype=np.float64)
    except (OSError, ValueError, AttributeError) as e:
        raise DecodeError(getattr(image, 'filename', None) or '<image>', str(e)) from e

    coefficients = low_frequency_dct(pixels).flatten()
    median = np.sort(coefficients)[HASH_BITS // 2]
    bits = coefficients > median

    return imagehash.ImageHash(bits.reshape(DCT_SIZE, DCT_SIZE))


def fingerprint_file(image_path: Union[str, Path]) -> imagehash.ImageHash:
    """Open a frame from disk and fingerprint it"""
    try:
        with Image.open(image_path) as img:
            img.load()
            return fingerprint(img)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(image_path, str(e)) from e


def fingerprint_to_bits(fp: imagehash.ImageHash) -> str:
    """Render a fingerprint as a '0'/'1' string in bit order"""
    return ''.join('1' if bit else '0' for bit in fp.hash.flatten())


def fingerprint_from_bits(bits: str) -> imagehash.ImageHash:
    """Parse a '0'/'1' string back into a fingerprint"""
    if not bits or set(bits) - {'0', '1'}:
        raise ValueError(f"Not a bit string: {bits!r}")

    array = np.array([c == '1' for c in bits], dtype=bool)
    side = math.isqrt(len(bits))
    if side * side == len(bits):
        return imagehash.ImageHash(array.reshape(side, side))
    return imagehash.ImageHash(array.reshape(1, -1))
