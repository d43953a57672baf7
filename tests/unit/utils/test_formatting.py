"""Unit tests for formatting helpers."""

import pytest
from diskplan.utils.formatting import format_mode


class TestFormatMode:
    """Tests for format_mode function."""

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (0o755, "rwxr-xr-x"),
            (0o640, "rw-r-----"),
            (0o000, "---------"),
            (0o4750, "rwxr-x---"),
            (None, "?????????"),
        ],
    )
    def test_format(self, mode: int | None, expected: str) -> None:
        """Permission bits render as rwx triplets."""
        assert format_mode(mode) == expected
