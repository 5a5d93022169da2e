"""
Frame Extractor Tests
=====================

OpenCV extraction against small locally written clips, and the
synthetic backend.
"""

import cv2
import numpy as np
import pytest

from thumbnailer.errors import UpstreamFetchError
from thumbnailer.media import OpenCVFrameExtractor, SyntheticFrameExtractor


def write_clip(path, width: int, height: int, frames: int, fps: float = 10.0) -> str:
    """Write an MJPG clip whose frame i has every pixel set to i * 10."""
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), fps, (width, height))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG clips")

    for i in range(frames):
        writer.write(np.full((height, width, 3), i * 10, dtype=np.uint8))
    writer.release()
    return str(path)


class TestOpenCVFrameExtractor:

    def test_reads_frame_at_offset(self, tmp_path):
        clip = write_clip(tmp_path / "long.avi", 160, 90, frames=20)

        sample = OpenCVFrameExtractor(seek_seconds=1.0).extract(clip)

        assert (sample.width, sample.height) == (160, 90)
        assert sample.pixels.shape == (90, 160, 3)
        # ~frame 10 at 10 fps, not the first frame
        assert sample.pixels.mean() > 50

    def test_short_clip_falls_back_to_first_frame(self, tmp_path):
        clip = write_clip(tmp_path / "short.avi", 90, 160, frames=3)

        sample = OpenCVFrameExtractor(seek_seconds=5.0).extract(clip)

        assert (sample.width, sample.height) == (90, 160)

    def test_zero_offset_reads_first_frame(self, tmp_path):
        clip = write_clip(tmp_path / "clip.avi", 160, 90, frames=5)

        sample = OpenCVFrameExtractor(seek_seconds=0).extract(clip)

        assert sample.pixels.mean() < 10

    def test_unreachable_source(self, tmp_path):
        with pytest.raises(UpstreamFetchError):
            OpenCVFrameExtractor().extract(str(tmp_path / "nope.mp4"))

    def test_non_video_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("definitely not a video")

        with pytest.raises(UpstreamFetchError):
            OpenCVFrameExtractor().extract(str(path))

    def test_negative_offset_rejected(self):
        with pytest.raises(ValueError):
            OpenCVFrameExtractor(seek_seconds=-1)


class TestSyntheticFrameExtractor:

    def test_deterministic_per_locator(self):
        extractor = SyntheticFrameExtractor(width=64, height=36)

        a1 = extractor.extract("https://example.com/a.mp4")
        a2 = extractor.extract("https://example.com/a.mp4")
        b = extractor.extract("https://example.com/b.mp4")

        assert np.array_equal(a1.pixels, a2.pixels)
        assert not np.array_equal(a1.pixels, b.pixels)
        assert (a1.width, a1.height) == (64, 36)
