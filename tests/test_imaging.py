"""Tests for raster transforms."""

import pytest
import numpy as np


class TestGrayscale:
    """Test cases for grayscale conversion."""

    def test_integer_luma_formula(self, sample_image):
        """Test conversion matches the integer luma approximation."""
        from objectdetect.imaging import grayscale

        gray = grayscale(sample_image)

        rgb = sample_image.astype(np.int64)
        expected = (rgb[..., 0] * 4899 + rgb[..., 1] * 9617 + rgb[..., 2] * 1868 + 8192) >> 14
        assert gray.dtype == np.uint32
        assert gray.shape == sample_image.shape[:2]
        assert np.array_equal(gray, expected)

    def test_known_values(self):
        """Test a few hand-computed pixels."""
        from objectdetect.imaging import grayscale

        frame = np.array([[[255, 255, 255], [100, 0, 0], [0, 0, 0]]], dtype=np.uint8)
        gray = grayscale(frame)

        assert gray.tolist() == [[255, 30, 0]]

    def test_alpha_is_ignored(self, sample_image):
        """Test the alpha channel does not change the result."""
        from objectdetect.imaging import grayscale

        opaque = np.dstack([sample_image, np.full(sample_image.shape[:2], 255, np.uint8)])
        clear = np.dstack([sample_image, np.zeros(sample_image.shape[:2], np.uint8)])

        assert np.array_equal(grayscale(opaque), grayscale(clear))
        assert np.array_equal(grayscale(opaque), grayscale(sample_image))

    def test_bgr_order(self, sample_image):
        """Test BGR input gives the same result as the equivalent RGB input."""
        from objectdetect.imaging import grayscale

        bgr = sample_image[..., ::-1].copy()
        assert np.array_equal(grayscale(bgr, bgr=True), grayscale(sample_image))

    def test_writes_into_out(self, sample_image):
        """Test the output buffer is filled in place."""
        from objectdetect.imaging import grayscale

        out = np.zeros(sample_image.shape[:2], dtype=np.uint32)
        result = grayscale(sample_image, out=out)
        assert result is out

    def test_invalid_shape(self, sample_grayscale_image):
        """Test a 1-channel image is rejected."""
        from objectdetect.imaging import grayscale

        with pytest.raises(ValueError):
            grayscale(sample_grayscale_image)


class TestRescale:
    """Test cases for nearest neighbor rescaling."""

    def test_identity(self, sample_grayscale_image):
        """Test factor 1.0 returns an identical image."""
        from objectdetect.imaging import rescale

        result = rescale(sample_grayscale_image, 1.0)
        assert result.dtype == sample_grayscale_image.dtype
        assert np.array_equal(result, sample_grayscale_image)

    def test_halving(self):
        """Test factor 2 keeps every second row and column."""
        from objectdetect.imaging import rescale

        src = np.arange(24, dtype=np.uint32).reshape(4, 6)
        result = rescale(src, 2.0)

        assert result.shape == (2, 3)
        assert np.array_equal(result, src[::2, ::2])

    def test_fractional_factor(self):
        """Test sample positions for a non integer factor."""
        from objectdetect.imaging import rescale

        src = np.arange(100, dtype=np.uint32).reshape(10, 10)
        result = rescale(src, 1.5)

        picks = [0, 1, 3, 4, 6, 7]
        assert result.shape == (6, 6)
        assert np.array_equal(result, src[np.ix_(picks, picks)])

    def test_output_size_is_floored(self, sample_grayscale_image):
        """Test output size is floor(size / factor)."""
        from objectdetect.imaging import rescale

        result = rescale(sample_grayscale_image, 1.1)
        assert result.shape == (int(48 / 1.1), int(64 / 1.1))

    def test_upscaling_rejected(self, sample_grayscale_image):
        """Test factors below 1 raise an error."""
        from objectdetect.imaging import rescale

        with pytest.raises(ValueError):
            rescale(sample_grayscale_image, 0.5)

    def test_out_shape_mismatch(self, sample_grayscale_image):
        """Test a wrongly sized output buffer raises an error."""
        from objectdetect.imaging import rescale

        with pytest.raises(ValueError):
            rescale(sample_grayscale_image, 2.0, out=np.zeros((10, 10), dtype=np.uint8))


class TestMirror:
    """Test cases for horizontal mirroring."""

    def test_reverses_rows(self):
        """Test each row is reversed."""
        from objectdetect.imaging import mirror

        src = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.uint32)
        assert mirror(src).tolist() == [[3, 2, 1], [6, 5, 4]]

    def test_twice_is_identity(self, sample_grayscale_image):
        """Test mirroring twice restores the image."""
        from objectdetect.imaging import mirror

        assert np.array_equal(mirror(mirror(sample_grayscale_image)), sample_grayscale_image)


class TestEqualizeHistogram:
    """Test cases for histogram equalization."""

    def test_uniform_histogram_unchanged(self):
        """Test an image using every level once per row stays the same."""
        from objectdetect.imaging import equalize_histogram

        src = np.tile(np.arange(256, dtype=np.uint8), (4, 1))
        result = equalize_histogram(src, step=1)

        assert result.dtype == np.uint8
        assert np.array_equal(result, src)

    def test_two_levels_spread(self):
        """Test two close gray levels are pushed apart."""
        from objectdetect.imaging import equalize_histogram

        src = np.full((2, 100), 100, dtype=np.uint8)
        src[1] = 150
        result = equalize_histogram(src, step=1)

        low, high = np.unique(result)
        assert result[0, 0] == low
        assert result[1, 0] == high
        assert high >= 254
        assert high - low > 100

    def test_sampled_values_in_range(self, sample_grayscale_image):
        """Test sampled equalization stays within [0, 255]."""
        from objectdetect.imaging import equalize_histogram

        result = equalize_histogram(sample_grayscale_image, step=5)
        assert result.shape == sample_grayscale_image.shape
        assert result.min() >= 0
        assert result.max() <= 255

    def test_in_place(self):
        """Test the source can be its own destination."""
        from objectdetect.imaging import equalize_histogram

        src = np.full((2, 100), 100, dtype=np.uint32)
        src[1] = 150
        result = equalize_histogram(src, step=1, out=src)

        assert result is src
        assert src[1, 0] >= 254

    def test_out_of_range_rejected(self):
        """Test values above 255 raise an error."""
        from objectdetect.imaging import equalize_histogram

        with pytest.raises(ValueError):
            equalize_histogram(np.full((4, 4), 300, dtype=np.uint32))

    def test_invalid_step(self, sample_grayscale_image):
        """Test a zero step raises an error."""
        from objectdetect.imaging import equalize_histogram

        with pytest.raises(ValueError):
            equalize_histogram(sample_grayscale_image, step=0)


class TestEdgeDensity:
    """Test cases for the gradient magnitude image."""

    def test_border_is_zero(self, sample_grayscale_image):
        """Test the 2 pixel border is left at zero."""
        from objectdetect.imaging import edge_density

        result = edge_density(sample_grayscale_image)

        assert result.dtype == np.uint32
        assert not result[:2].any()
        assert not result[-2:].any()
        assert not result[:, :2].any()
        assert not result[:, -2:].any()

    def test_flat_interior_is_zero(self):
        """Test a constant image has no gradient away from the border."""
        from objectdetect.imaging import edge_density

        result = edge_density(np.full((16, 16), 100, dtype=np.uint8))
        assert not result[3:-3, 3:-3].any()

    def test_step_edge(self):
        """Test a vertical step produces a strong response along it."""
        from objectdetect.imaging import edge_density

        src = np.zeros((12, 12), dtype=np.uint8)
        src[:, 6:] = 255
        result = edge_density(src)

        assert result[6, 5] > 100
        assert result[6, 6] > 100

    def test_tiny_image(self):
        """Test images smaller than the filter give an all zero result."""
        from objectdetect.imaging import edge_density

        result = edge_density(np.full((4, 4), 50, dtype=np.uint8))
        assert result.shape == (4, 4)
        assert not result.any()
