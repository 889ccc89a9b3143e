"""
Tests for image / pyramid containers and configuration.
"""

import logging

import numpy as np
import pytest

from lkflow import GrayscaleImage, ImagePyramid, InvalidParameterError, as_gray_image
from lkflow.config import (
    DEFAULT_LEVELS, DEFAULT_WINDOW_SIZE, configure_logging, debug_enabled, params_from_env,
)


class TestGrayscaleImage:
    """Tests for GrayscaleImage ingestion."""

    def test_uint8_is_normalised(self):
        """uint8 samples are scaled to [0, 1]."""
        img = GrayscaleImage(np.array([[0, 255], [51, 102]], dtype=np.uint8))
        assert img.data.dtype == np.float64
        np.testing.assert_allclose(img.data, [[0.0, 1.0], [0.2, 0.4]])

    def test_uint16_is_normalised(self):
        """uint16 samples are scaled by 65535."""
        img = GrayscaleImage(np.array([[65535, 0]], dtype=np.uint16))
        np.testing.assert_allclose(img.data, [[1.0, 0.0]])

    def test_float_passthrough(self):
        """Float samples in [0, 1] keep their values."""
        arr = np.array([[0.25, 1.0]], dtype=np.float32)
        img = GrayscaleImage(arr)
        np.testing.assert_allclose(img.data, [[0.25, 1.0]])

    @pytest.mark.parametrize("value", [255.0, 1.5, -0.1])
    def test_float_out_of_range_rejected(self, value):
        """Float samples outside [0, 1] are rejected instead of rescaled."""
        arr = np.full((4, 4), 0.5)
        arr[1, 2] = value
        with pytest.raises(InvalidParameterError):
            GrayscaleImage(arr)

    def test_dimensions(self):
        """width is columns, height is rows."""
        img = GrayscaleImage(np.zeros((3, 5)))
        assert img.width == 5
        assert img.height == 3
        assert img.shape == (3, 5)

    def test_read_only(self):
        """Samples cannot be modified after construction."""
        img = GrayscaleImage(np.zeros((4, 4)))
        with pytest.raises(ValueError):
            img.data[0, 0] = 1.0

    def test_copy_is_independent(self):
        """Mutating the source array does not affect the image."""
        arr = np.zeros((4, 4))
        img = GrayscaleImage(arr)
        arr[0, 0] = 1.0
        assert img.data[0, 0] == 0.0

    def test_color_rejected(self):
        """3-channel input raises InvalidParameterError."""
        with pytest.raises(InvalidParameterError):
            GrayscaleImage(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_empty_rejected(self):
        """Zero-sized input raises."""
        with pytest.raises(InvalidParameterError):
            GrayscaleImage(np.zeros((0, 4)))

    def test_nan_rejected(self):
        """Non-finite samples raise."""
        arr = np.zeros((4, 4))
        arr[1, 1] = np.nan
        with pytest.raises(InvalidParameterError):
            GrayscaleImage(arr)

    def test_as_gray_image_passthrough(self):
        """An existing GrayscaleImage is returned as-is."""
        img = GrayscaleImage(np.zeros((4, 4)))
        assert as_gray_image(img) is img


class TestImagePyramid:
    """Tests for ImagePyramid invariants."""

    def test_rejects_wrong_level_size(self):
        """Each level must be exactly half (floor) of the previous one."""
        a = GrayscaleImage(np.zeros((16, 16)))
        b = GrayscaleImage(np.zeros((7, 8)))
        with pytest.raises(InvalidParameterError):
            ImagePyramid(levels=(a, b))

    def test_rejects_empty(self):
        """A pyramid needs a base level."""
        with pytest.raises(InvalidParameterError):
            ImagePyramid(levels=())

    def test_compatibility(self):
        """Pyramids with the same level shapes are compatible."""
        a = ImagePyramid(levels=(GrayscaleImage(np.zeros((8, 8))), GrayscaleImage(np.zeros((4, 4)))))
        b = ImagePyramid(levels=(GrayscaleImage(np.ones((8, 8))), GrayscaleImage(np.ones((4, 4)))))
        c = ImagePyramid(levels=(GrayscaleImage(np.zeros((8, 8))),))
        assert a.is_compatible(b)
        assert not a.is_compatible(c)
        assert len(a) == 2
        assert a.base is a[0]


class TestConfig:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        """No overrides gives the package defaults."""
        corner_params, lk_params = params_from_env({})
        assert lk_params.window_size == DEFAULT_WINDOW_SIZE
        assert lk_params.levels == DEFAULT_LEVELS
        assert corner_params.max_corners is None

    def test_overrides(self):
        """LKFLOW_* variables override the defaults."""
        env = {
            "LKFLOW_WINDOW_SIZE": "15",
            "LKFLOW_MAX_ITERATIONS": "10",
            "LKFLOW_LEVELS": "2",
            "LKFLOW_QUALITY_LEVEL": "0.2",
            "LKFLOW_MIN_DISTANCE": "4",
            "LKFLOW_MAX_CORNERS": "100",
        }
        corner_params, lk_params = params_from_env(env)
        assert lk_params.window_size == 15
        assert lk_params.max_iterations == 10
        assert lk_params.levels == 2
        assert corner_params.quality_level == 0.2
        assert corner_params.min_distance == 4.0
        assert corner_params.max_corners == 100

    def test_debug_flag(self):
        """LKFLOW_DEBUG=1 enables debug."""
        assert debug_enabled({"LKFLOW_DEBUG": "1"}) is True
        assert debug_enabled({}) is False

    def test_configure_logging_once(self):
        """Repeated configuration does not stack handlers."""
        configure_logging(logging.INFO)
        configure_logging(logging.DEBUG)
        logger = logging.getLogger("lkflow")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
