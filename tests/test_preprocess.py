"""
Tests for frame preprocessing.
"""

import numpy as np
import pytest

from trt_inference.models.frame import Frame
from trt_inference.preprocessing.resize import add_batch_dim, preprocess_frame, source_indices


class TestSourceIndices:
    def test_downscale(self):
        assert list(source_indices(10, 4)) == [0, 2, 5, 7]

    def test_upscale(self):
        assert list(source_indices(2, 4)) == [0, 0, 1, 1]

    def test_identity(self):
        assert list(source_indices(5, 5)) == [0, 1, 2, 3, 4]

    def test_never_out_of_range(self):
        idx = source_indices(7, 640)
        assert idx.max() <= 6
        assert idx.min() == 0


class TestPreprocessFrame:
    def test_shape_and_dtype(self, rgb_frame):
        tensor = preprocess_frame(rgb_frame, 4)
        assert tensor.shape == (3, 4, 4)
        assert tensor.dtype == np.float32

    def test_nearest_neighbour_sampling(self, rgb_frame):
        tensor = preprocess_frame(rgb_frame, 4)

        expected_red = np.array([0, 50, 125, 175], dtype=np.float32) / 255.0
        np.testing.assert_allclose(tensor[0, 0], expected_red)
        np.testing.assert_allclose(tensor[1], 128 / 255.0)
        np.testing.assert_allclose(tensor[2], 1.0)

    def test_values_in_unit_range(self):
        rng = np.random.default_rng(1)
        pixels = rng.integers(0, 256, size=(37, 53, 3), dtype=np.uint8)

        tensor = preprocess_frame(pixels, 16)

        assert tensor.min() >= 0.0
        assert tensor.max() <= 1.0

    def test_single_channel_zero_fills(self):
        pixels = np.full((4, 4), 255, dtype=np.uint8)

        tensor = preprocess_frame(Frame.from_numpy(pixels), 2)

        np.testing.assert_allclose(tensor[0], 1.0)
        assert not tensor[1:].any()

    def test_alpha_channel_ignored(self):
        pixels = np.zeros((4, 4, 4), dtype=np.uint8)
        pixels[:, :, 3] = 255
        pixels[:, :, 0] = 51

        tensor = preprocess_frame(pixels, 4)

        np.testing.assert_allclose(tensor[0], 0.2)
        assert not tensor[1:].any()

    def test_1x1_frame(self):
        pixels = np.array([[[255, 0, 255]]], dtype=np.uint8)

        tensor = preprocess_frame(pixels, 3)

        np.testing.assert_allclose(tensor[0], 1.0)
        np.testing.assert_allclose(tensor[1], 0.0)
        np.testing.assert_allclose(tensor[2], 1.0)

    def test_empty_frame_rejected(self):
        with pytest.raises(ValueError):
            preprocess_frame(np.zeros((0, 4, 3), dtype=np.uint8), 4)

    def test_invalid_resolution(self, rgb_frame):
        with pytest.raises(ValueError):
            preprocess_frame(rgb_frame, 0)

    def test_frame_not_modified(self, rgb_frame):
        before = rgb_frame.pixels.copy()
        preprocess_frame(rgb_frame, 4)
        np.testing.assert_array_equal(rgb_frame.pixels, before)


class TestAddBatchDim:
    def test_adds_leading_axis(self):
        tensor = np.zeros((3, 4, 4), dtype=np.float32)
        batched = add_batch_dim(tensor)
        assert batched.shape == (1, 3, 4, 4)
        assert batched.flags["C_CONTIGUOUS"]


class TestPreprocessColour:
    def test_uniform_frame_upscaled_stays_uniform(self):
        pixels = np.empty((2, 2, 3), dtype=np.uint8)
        pixels[:, :] = (255, 0, 51)

        tensor = preprocess_frame(Frame.from_numpy(pixels), 4)

        np.testing.assert_allclose(tensor[0], 1.0)
        np.testing.assert_allclose(tensor[1], 0.0)
        np.testing.assert_allclose(tensor[2], 0.2)

    def test_black_frame_gives_zero_tensor(self):
        pixels = np.zeros((7, 5, 3), dtype=np.uint8)

        tensor = preprocess_frame(pixels, 8)

        assert tensor.shape == (3, 8, 8)
        assert not tensor.any()
