"""Tests for the command line interface."""

import pytest
import numpy as np


class TestCli:
    """Test cases for the objectdetect CLI."""

    def test_info_builtin(self, capsys):
        """Test cascade statistics for a builtin cascade."""
        from objectdetect.cli import main

        assert main(["info", "--cascade", "handfist"]) == 0

        out = capsys.readouterr().out
        assert "Window:   24x24" in out
        assert "Stages:   17" in out
        assert "Trees:    142 (31 tilted)" in out

    def test_info_file(self, tmp_path, capsys):
        """Test cascade statistics for a cascade file."""
        from objectdetect.cli import main

        path = tmp_path / "tiny.txt"
        path.write_text("4 4 0.5 1 0 1 0 0 4 2 1 0.25 0 1")

        assert main(["info", "--cascade", str(path)]) == 0
        assert "Trees:    1 (0 tilted)" in capsys.readouterr().out

    def test_detect(self, tmp_path, capsys):
        """Test detection on an image file writes the annotated output."""
        import cv2

        from objectdetect.cli import main

        rng = np.random.default_rng(8)
        image_path = tmp_path / "input.png"
        output_path = tmp_path / "output.png"
        cv2.imwrite(str(image_path), rng.integers(0, 256, (60, 80, 3), dtype=np.uint8))

        code = main([
            "detect",
            "--image", str(image_path),
            "--cascade", "handfist",
            "--width", "48",
            "--height", "48",
            "--step", "2",
            "--mirror",
            "--output", str(output_path),
        ])

        assert code == 0
        assert output_path.exists()
        assert cv2.imread(str(output_path)).shape == (60, 80, 3)

    def test_detect_missing_image(self, tmp_path):
        """Test an unreadable image returns a non-zero exit code."""
        from objectdetect.cli import main

        assert main(["detect", "--image", str(tmp_path / "missing.png")]) == 1

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        from objectdetect.cli import main

        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()
