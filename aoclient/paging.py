"""Grid layout, paging and filtering for the character select screen."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

__all__ = [
    "GridLayout",
    "PageInfo",
    "Character",
    "grid_layout",
    "page_info",
    "filter_characters",
    "group_by_category",
]


def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


@dataclass(frozen=True)
class GridLayout:
    """A grid of equally sized buttons laid out row by row."""

    columns: int
    rows: int
    button_width: int
    button_height: int
    spacing_x: int
    spacing_y: int

    @property
    def per_page(self) -> int:
        return self.columns * self.rows

    def positions(self, count: int) -> list[tuple[int, int]]:
        """Top-left corners of the first ``count`` buttons."""
        if count < 0:
            raise ValueError("count must not be negative")
        step_x = self.button_width + self.spacing_x
        step_y = self.button_height + self.spacing_y
        return [
            (step_x * (n % self.columns), step_y * (n // self.columns))
            for n in range(count)
        ]


def grid_layout(
    area_width: int,
    area_height: int,
    button_width: int,
    button_height: int,
    spacing_x: int,
    spacing_y: int,
) -> GridLayout:
    """Work out how many buttons fit in an area of the given size."""
    step_x = spacing_x + button_width
    step_y = spacing_y + button_height
    if step_x <= 0 or step_y <= 0:
        raise ValueError("button size plus spacing must be positive")
    columns = _trunc_div(area_width - button_width, step_x) + 1
    rows = _trunc_div(area_height - button_height, step_y) + 1
    return GridLayout(columns, rows, button_width, button_height, spacing_x, spacing_y)


@dataclass(frozen=True)
class PageInfo:
    """What one page of a paged list shows."""

    total_pages: int
    items_on_page: int
    start: int
    has_previous: bool
    has_next: bool

    @property
    def indices(self) -> range:
        return range(self.start, self.start + self.items_on_page)


def page_info(total: int, per_page: int, current_page: int) -> PageInfo:
    """Page count, item count and navigation for ``current_page``."""
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    if total < 0:
        raise ValueError("total must not be negative")
    total_pages, remainder = divmod(total, per_page)
    if remainder:
        total_pages += 1
        if total_pages > current_page + 1:
            on_page = per_page
        else:
            on_page = remainder
    else:
        on_page = per_page
    return PageInfo(
        total_pages=total_pages,
        items_on_page=on_page,
        start=current_page * per_page,
        has_previous=current_page > 0,
        has_next=total_pages > current_page + 1,
    )


@dataclass
class Character:
    """A character offered by the server."""

    name: str
    taken: bool = False


def filter_characters(
    characters: Iterable[Character], search: str, show_taken: bool
) -> list[int]:
    """Indices of the characters that stay visible under the filters."""
    needle = search.casefold()
    visible = []
    for index, character in enumerate(characters):
        if not show_taken and character.taken:
            continue
        if needle not in character.name.casefold():
            continue
        visible.append(index)
    return visible


def group_by_category(
    characters: Sequence[Character], category_of: Callable[[str], str]
) -> tuple[dict[str, list[int]], list[int]]:
    """Group character indices by category, in display order.

    Returns the categories (newest first, each with its members in order)
    and the indices of characters with no category. Categories are matched
    case-insensitively and keep the spelling they were first seen with.
    """
    categories: dict[str, list[int]] = {}
    names_by_key: dict[str, str] = {}
    creation_order: list[str] = []
    uncategorized: list[int] = []
    for index, character in enumerate(characters):
        category = category_of(character.name)
        if category == "":
            uncategorized.append(index)
            continue
        key = category.casefold()
        if key not in names_by_key:
            names_by_key[key] = category
            categories[category] = []
            creation_order.append(category)
        categories[names_by_key[key]].append(index)
    ordered = {name: categories[name] for name in reversed(creation_order)}
    return ordered, uncategorized