"""
Tests for Shi–Tomasi corner detection.
"""

import numpy as np
import pytest

from lkflow import InvalidParameterError, ShiTomasiParams, good_features_to_track, shitomasi_detect
from lkflow.imaging import min_eigenvalue, structure_tensor

SQUARE_CORNERS = np.array([[20, 20], [43, 20], [20, 43], [43, 43]], dtype=np.float64)


def pairwise_distances(pts):
    diff = pts[:, None, :] - pts[None, :, :]
    return np.sqrt((diff ** 2).sum(axis=-1))


class TestGoodFeaturesToTrack:
    """Tests for good_features_to_track."""

    def test_single_square_strongest_at_corner(self, square_image):
        """The strongest point lies within 1 px of a square corner."""
        pts = good_features_to_track(square_image, 0.01, 3)
        assert pts.shape[0] >= 1
        nearest = np.min(np.linalg.norm(SQUARE_CORNERS - pts[0], axis=1))
        assert nearest <= 1.0

    def test_all_square_corners_found(self, square_image):
        """Every corner of the square has a detection next to it."""
        pts = good_features_to_track(square_image, 0.5, 3)
        for corner in SQUARE_CORNERS:
            assert np.min(np.linalg.norm(pts - corner, axis=1)) <= 1.0

    def test_flat_image_empty(self, flat_image):
        """A uniform image yields an empty (0,2) result."""
        pts = good_features_to_track(flat_image, 0.1, 5)
        assert pts.shape == (0, 2)

    @pytest.mark.parametrize("min_distance", [1.5, 5, 10])
    def test_spacing(self, textured, min_distance):
        """No two returned points are closer than min_distance."""
        pts = good_features_to_track(textured, 0.01, min_distance)
        assert pts.shape[0] > 1
        dist = pairwise_distances(pts)
        np.fill_diagonal(dist, np.inf)
        assert dist.min() >= min_distance

    def test_strongest_first(self, textured):
        """Responses at the returned points never increase."""
        pts = good_features_to_track(textured, 0.05, 4)
        score = min_eigenvalue(structure_tensor(textured))
        values = score[pts[:, 1].astype(int), pts[:, 0].astype(int)]
        assert np.all(np.diff(values) <= 0)

    def test_quality_threshold(self, textured):
        """Every returned point scores at least quality_level * max."""
        quality = 0.3
        pts = good_features_to_track(textured, quality, 0)
        score = min_eigenvalue(structure_tensor(textured))
        values = score[pts[:, 1].astype(int), pts[:, 0].astype(int)]
        assert values.min() >= quality * score.max()

    def test_zero_distance_keeps_all_local_maxima(self, textured):
        """min_distance=0 returns a superset of a spaced result."""
        all_pts = good_features_to_track(textured, 0.05, 0)
        spaced = good_features_to_track(textured, 0.05, 8)
        assert all_pts.shape[0] >= spaced.shape[0]
        as_set = {tuple(p) for p in all_pts}
        assert all(tuple(p) in as_set for p in spaced)

    def test_integer_pixel_coordinates(self, textured):
        """Detections sit on pixel centres in (x, y) order within the image."""
        pts = good_features_to_track(textured, 0.1, 5)
        np.testing.assert_array_equal(pts, np.round(pts))
        assert pts[:, 0].max() < textured.shape[1]
        assert pts[:, 1].max() < textured.shape[0]

    def test_deterministic(self, textured):
        """Repeated runs give identical output."""
        a = good_features_to_track(textured, 0.05, 5)
        b = good_features_to_track(textured, 0.05, 5)
        np.testing.assert_array_equal(a, b)

    def test_equal_scores_in_scan_order(self):
        """Corners with identical response come out in row-major (y, x) order."""
        img = np.zeros((64, 112), dtype=np.float64)
        img[20:44, 20:44] = 1.0
        img[20:44, 68:92] = 1.0
        pts = good_features_to_track(img, 0.5, 3)
        score = min_eigenvalue(structure_tensor(img))
        values = score[pts[:, 1].astype(int), pts[:, 0].astype(int)]

        tied = 0
        for i in range(len(pts)):
            for j in range(i + 1, len(pts)):
                if values[i] == values[j]:
                    tied += 1
                    assert (pts[i, 1], pts[i, 0]) < (pts[j, 1], pts[j, 0])
        # the two squares are translated copies, so their corners tie exactly
        assert tied >= 4

    def test_uint8_input(self, square_image):
        """uint8 input gives the same points as its float equivalent."""
        as_u8 = (square_image * 255).astype(np.uint8)
        np.testing.assert_array_equal(
            good_features_to_track(as_u8, 0.1, 3),
            good_features_to_track(square_image, 0.1, 3),
        )

    @pytest.mark.parametrize("quality", [0.0, -0.1, 1.5])
    def test_bad_quality(self, textured, quality):
        """quality_level outside (0, 1] is rejected."""
        with pytest.raises(InvalidParameterError):
            good_features_to_track(textured, quality, 5)

    def test_bad_min_distance(self, textured):
        """Negative min_distance is rejected."""
        with pytest.raises(InvalidParameterError):
            good_features_to_track(textured, 0.1, -1)

    def test_nan_min_distance(self, textured):
        """NaN min_distance is a parameter error, not a crash in the grid."""
        with pytest.raises(InvalidParameterError):
            good_features_to_track(textured, 0.1, float("nan"))


class TestShiTomasiDetect:
    """Tests for the parameter-object wrapper."""

    def test_max_corners_truncates(self, textured):
        """max_corners keeps the strongest N in order."""
        full = shitomasi_detect(textured, params=ShiTomasiParams(quality_level=0.05, min_distance=5))
        capped = shitomasi_detect(
            textured, params=ShiTomasiParams(quality_level=0.05, min_distance=5, max_corners=10),
        )
        assert capped.shape == (10, 2)
        np.testing.assert_array_equal(capped, full[:10])

    def test_no_cap_by_default(self, textured):
        """Default params return every detection."""
        pts = shitomasi_detect(textured)
        np.testing.assert_array_equal(pts, good_features_to_track(textured))
