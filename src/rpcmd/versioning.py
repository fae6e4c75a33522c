"""Dotted version comparison shared by doctor probes."""
from __future__ import annotations


def parse_segments(value: str) -> tuple[int, ...]:
    """Return the numeric segments of a dotted version string.

    A leading ``v`` is ignored. Segments that are not plain integers count
    as ``0`` so ``"18.x"`` compares like ``"18.0"``.
    """
    text = value.strip().lstrip("vV")
    numbers: list[int] = []
    for part in text.split("."):
        try:
            numbers.append(int(part))
        except ValueError:
            numbers.append(0)
    return tuple(numbers)


def compare_versions(left: str, right: str) -> int:
    """Compare two dotted versions segment by segment.

    Returns ``1`` when *left* is newer, ``-1`` when *right* is newer and
    ``0`` when they are equal. Missing trailing segments are treated as
    ``0``, so ``"1.2"`` and ``"1.2.0"`` compare equal.
    """
    left_parts = parse_segments(left)
    right_parts = parse_segments(right)
    width = max(len(left_parts), len(right_parts))
    for index in range(width):
        a = left_parts[index] if index < len(left_parts) else 0
        b = right_parts[index] if index < len(right_parts) else 0
        if a > b:
            return 1
        if a < b:
            return -1
    return 0


def meets_minimum(current: str, minimum: str) -> bool:
    """Return ``True`` when *current* is at least *minimum*."""
    return compare_versions(current, minimum) >= 0


__all__ = ["compare_versions", "meets_minimum", "parse_segments"]
