"""
Shared synthetic images for the test suite.
"""

import cv2
import numpy as np
import pytest


def make_texture(shape=(128, 128), sigma=1.5, seed=0):
    """Smooth random texture normalised to [0, 1]."""
    rng = np.random.default_rng(seed)
    noise = rng.random(shape)
    blurred = cv2.GaussianBlur(noise, (0, 0), sigma)
    lo, hi = blurred.min(), blurred.max()
    return (blurred - lo) / (hi - lo)


def shift_image(image, dx, dy):
    """Content at (x, y) moves to (x + dx, y + dy)."""
    return np.roll(image, shift=(dy, dx), axis=(0, 1))


@pytest.fixture
def textured():
    return make_texture()


@pytest.fixture
def square_image():
    """Bright 24x24 square on a dark 64x64 background, corners at 20 and 43."""
    img = np.zeros((64, 64), dtype=np.float64)
    img[20:44, 20:44] = 1.0
    return img


@pytest.fixture
def half_textured():
    """Texture for x < 64, exactly flat for x >= 64."""
    img = make_texture()
    img[:, 64:] = 0.0
    return img


@pytest.fixture
def flat_image():
    return np.full((48, 48), 0.5, dtype=np.float64)
