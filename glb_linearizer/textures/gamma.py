"""
Gamma lookup tables for sRGB <-> linear conversion of 8-bit color channels.
"""

from enum import Enum

import numpy as np

GAMMA = 2.2


class GammaDirection(str, Enum):
    LINEARIZE = "linearize"      # out = in ** 2.2
    DELINEARIZE = "delinearize"  # out = in ** (1 / 2.2)


def build_gamma_lut(direction: GammaDirection, gamma: float = GAMMA) -> np.ndarray:
    """
    Precompute the 256-entry byte table for one direction.

    Build once per run and share it read-only across all diffuse textures.

    Args:
        direction: Which way to convert.
        gamma: Exponent of the power curve.

    Returns:
        uint8 array of length 256 with lut[0] == 0 and lut[255] == 255.
    """
    direction = GammaDirection(direction)
    exponent = gamma if direction is GammaDirection.LINEARIZE else 1.0 / gamma
    values = np.arange(256, dtype=np.float64) / 255.0
    lut = np.round(255.0 * np.power(values, exponent))
    lut = np.clip(lut, 0, 255).astype(np.uint8)
    lut.flags.writeable = False
    return lut


def apply_gamma_lut(pixels: np.ndarray, lut: np.ndarray) -> np.ndarray:
    """Map R, G, B through the table; alpha is copied untouched."""
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Expected an RGBA array of shape (H, W, 4), got {pixels.shape}")
    out = pixels.copy()
    out[..., :3] = lut[pixels[..., :3]]
    return out
