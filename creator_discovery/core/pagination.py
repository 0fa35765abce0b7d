"""Small helpers the presentation layer uses around a ResultPage."""
from typing import List, Tuple


def page_window(current: int, total: int, max_visible: int = 5) -> List[int]:
    """Page numbers to show: all of them when few, else a window around ``current``."""
    if total <= 0:
        return []
    if total <= max_visible:
        return list(range(1, total + 1))
    half = max_visible // 2
    if current <= half + 1:
        return list(range(1, max_visible + 1))
    if current >= total - half:
        return list(range(total - max_visible + 1, total + 1))
    return list(range(current - half, current + half + 1))


def showing_range(page: int, page_size: int, total: int) -> Tuple[int, int]:
    """1-based inclusive ``(first, last)`` row numbers on ``page``; ``(0, 0)`` when empty."""
    if total <= 0:
        return 0, 0
    first = (page - 1) * page_size + 1
    return min(first, total), min(page * page_size, total)


def format_number(value: float) -> str:
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(int(value))
