"""Tests for summed area tables."""

import pytest
import numpy as np


def _triangle_sum(image, x, y):
    """Brute force rotated table entry for column x >= 1."""
    height, width = image.shape
    total = 0
    for py in range(min(y, height)):
        reach = y - 1 - py
        for px in range(width):
            if abs(px - (x - 1)) <= reach:
                total += int(image[py, px])
    return total


class TestSat:
    """Test cases for axis-aligned integral images."""

    def test_table_layout(self, sample_grayscale_image):
        """Test table shape, dtype and zero first row and column."""
        from objectdetect.imaging import sat

        table = sat(sample_grayscale_image)

        assert table.shape == (49, 65)
        assert table.dtype == np.uint32
        assert not table[0].any()
        assert not table[:, 0].any()

    def test_prefix_sums(self):
        """Test every entry against a direct sum."""
        from objectdetect.imaging import sat

        rng = np.random.default_rng(2)
        image = rng.integers(0, 256, (7, 9), dtype=np.uint8)
        table = sat(image)

        for y in range(8):
            for x in range(10):
                assert table[y, x] == int(image[:y, :x].sum())

    def test_rect_sum(self):
        """Test 4-corner sums for every rectangle of a small image."""
        from objectdetect.imaging import rect_sum, sat

        rng = np.random.default_rng(3)
        image = rng.integers(0, 256, (5, 6), dtype=np.uint8)
        table = sat(image)

        for y in range(5):
            for x in range(6):
                for h in range(1, 6 - y):
                    for w in range(1, 7 - x):
                        expected = int(image[y:y + h, x:x + w].sum())
                        assert rect_sum(table, x, y, w, h) == expected

    def test_squared(self):
        """Test squared sums against a direct computation."""
        from objectdetect.imaging import rect_sum, squared_sat

        rng = np.random.default_rng(4)
        image = rng.integers(0, 256, (6, 7), dtype=np.uint8)
        table = squared_sat(image)

        squares = image.astype(np.int64) ** 2
        assert table[6, 7] == squares.sum()
        assert rect_sum(table, 2, 1, 3, 4) == squares[1:5, 2:5].sum()

    def test_region_sums_survive_wrapping(self):
        """Test small regions stay exact after the table wraps around 2^32."""
        from objectdetect.imaging import rect_sum, squared_sat

        image = np.full((300, 300), 255, dtype=np.uint8)
        table = squared_sat(image)

        assert 300 * 300 * 255 * 255 > 2 ** 32
        assert rect_sum(table, 290, 290, 10, 10) == 100 * 255 * 255
        assert rect_sum(table, 0, 0, 10, 10) == 100 * 255 * 255

    def test_reuses_out(self, sample_grayscale_image):
        """Test a dirty output buffer is fully overwritten."""
        from objectdetect.imaging import sat

        out = np.full((49, 65), 7, dtype=np.uint32)
        result = sat(sample_grayscale_image, out=out)

        assert result is out
        assert np.array_equal(out, sat(sample_grayscale_image))

    def test_out_mismatch(self, sample_grayscale_image):
        """Test a wrong buffer shape or dtype raises an error."""
        from objectdetect.imaging import sat

        with pytest.raises(ValueError):
            sat(sample_grayscale_image, out=np.zeros((48, 64), dtype=np.uint32))
        with pytest.raises(ValueError):
            sat(sample_grayscale_image, out=np.zeros((49, 65), dtype=np.float64))


class TestRotatedSat:
    """Test cases for the 45 degree rotated integral image."""

    def test_triangle_definition(self):
        """Test every entry against the brute force triangle sum."""
        from objectdetect.imaging import rotated_sat

        rng = np.random.default_rng(5)
        image = rng.integers(0, 256, (6, 8), dtype=np.uint8)
        table = rotated_sat(image)

        assert table.shape == (7, 9)
        assert not table[:, 0].any()
        assert not table[0].any()
        for y in range(7):
            for x in range(1, 9):
                assert table[y, x] == _triangle_sum(image, x, y), (x, y)

    def test_single_pixel(self):
        """Test a 1x1 image."""
        from objectdetect.imaging import rotated_sat

        table = rotated_sat(np.array([[9]], dtype=np.uint8))
        assert table.tolist() == [[0, 0], [0, 9]]

    def test_tilted_rect_sum(self):
        """Test a tilted rectangle covers the expected diamond of pixels."""
        from objectdetect.imaging import rotated_sat, tilted_rect_sum

        rng = np.random.default_rng(6)
        image = rng.integers(0, 256, (6, 8), dtype=np.uint8)
        table = rotated_sat(image)

        # (column, row) pairs of the 2x2 tilted rectangle with top corner at x=3
        covered = [(2, 0), (1, 1), (2, 1), (3, 1), (1, 2), (2, 2), (3, 2), (2, 3)]
        expected = sum(int(image[py, px]) for px, py in covered)

        assert tilted_rect_sum(table, 3, 0, 2, 2) == expected

    def test_reuses_out(self):
        """Test a dirty output buffer is fully overwritten."""
        from objectdetect.imaging import rotated_sat

        rng = np.random.default_rng(7)
        image = rng.integers(0, 256, (10, 12), dtype=np.uint8)
        out = np.full((11, 13), 3, dtype=np.uint32)

        rotated_sat(image, out=out)
        assert np.array_equal(out, rotated_sat(image))
