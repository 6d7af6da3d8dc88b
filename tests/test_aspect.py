from __future__ import annotations

import pytest

from cineswap.gen.aspect import SUPPORTED_RATIOS, closest_aspect_ratio


def _expected(width: int, height: int) -> str:
    ratio = width / height
    # min() keeps the first of equal keys, i.e. first-match tie-breaking.
    idx = min(range(len(SUPPORTED_RATIOS)), key=lambda i: abs(SUPPORTED_RATIOS[i][1] - ratio))
    return SUPPORTED_RATIOS[idx][0]


class TestClosestAspectRatio:
    @pytest.mark.parametrize(
        ("width", "height", "expected"),
        [
            (1000, 1500, "3:4"),
            (1080, 1920, "9:16"),
            (1000, 1000, "1:1"),
            (1200, 900, "4:3"),
            (1920, 1080, "16:9"),
            (4000, 1000, "16:9"),
            (100, 1000, "9:16"),
        ],
    )
    def test_common_sizes(self, width: int, height: int, expected: str) -> None:
        assert closest_aspect_ratio(width, height) == expected

    @pytest.mark.parametrize(
        ("width", "height"),
        [(None, 1500), (1000, None), (None, None), (0, 1500), (1000, 0)],
    )
    def test_missing_dimensions_default_to_poster_ratio(self, width, height) -> None:
        assert closest_aspect_ratio(width, height) == "3:4"

    def test_tie_between_9_16_and_3_4_keeps_earlier(self) -> None:
        # 21/32 sits exactly halfway between 0.5625 and 0.75.
        assert closest_aspect_ratio(21, 32) == "9:16"

    def test_tie_between_3_4_and_1_1_keeps_earlier(self) -> None:
        # 7/8 sits exactly halfway between 0.75 and 1.0.
        assert closest_aspect_ratio(7, 8) == "3:4"

    def test_always_returns_the_nearest_candidate(self) -> None:
        names = {name for name, _ in SUPPORTED_RATIOS}
        for width in range(1, 400, 7):
            for height in range(1, 400, 11):
                chosen = closest_aspect_ratio(width, height)
                assert chosen in names
                assert chosen == _expected(width, height)

    def test_candidate_order_is_fixed(self) -> None:
        assert [name for name, _ in SUPPORTED_RATIOS] == ["9:16", "3:4", "1:1", "4:3", "16:9"]
