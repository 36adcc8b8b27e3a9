"""
Tests for compute_load_window.
"""
import pytest

from indicharts.services.loader.window import compute_load_window


class TestLoadWindow:

    def test_top_of_list(self):
        # 800 / 140 -> 6 visible + 2 buffer, + 5 trailing
        assert compute_load_window(0, 800, 140, 100) == (0, 13)

    def test_scrolled(self):
        # first visible 10 -> start 8, end 10 + 8 + 5
        assert compute_load_window(1400, 800, 140, 100) == (8, 23)

    def test_clamped_to_total(self):
        assert compute_load_window(1400, 800, 140, 15) == (8, 15)

    def test_scrolled_past_end(self):
        start, end = compute_load_window(100_000, 800, 140, 15)
        assert start == 14
        assert end == 15

    def test_empty_list(self):
        assert compute_load_window(0, 800, 140, 0) == (0, 0)

    def test_zero_viewport_still_loads_buffer(self):
        assert compute_load_window(0, 0, 100, 50) == (0, 7)

    def test_item_size_must_be_positive(self):
        with pytest.raises(ValueError):
            compute_load_window(0, 800, 0, 10)
