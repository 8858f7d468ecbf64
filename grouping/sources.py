"""In-memory item sources."""

from typing import Iterable, List, Optional

import pandas as pd

from grouping.base import ItemSource, OverlayItem
from grouping.utils import items_from_df, validate_coordinates


class ListItemSource(ItemSource):
    """Item source backed by a Python list.

    Args:
        items: Initial items (copied).
    """

    def __init__(self, items: Optional[Iterable[OverlayItem]] = None):
        self._items: List[OverlayItem] = list(items) if items is not None else []

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        x_col: str = "lon",
        y_col: str = "lat",
        title_col: Optional[str] = None,
    ) -> "ListItemSource":
        """Build a source from a DataFrame of decimal-degree coordinates.

        Rows with missing or out-of-range coordinates are skipped.
        """
        df = validate_coordinates(df, x_col, y_col)
        return cls(items_from_df(df, x_col, y_col, title_col))

    def count(self) -> int:
        return len(self._items)

    def item_at(self, index: int) -> OverlayItem:
        return self._items[index]

    def add_item(self, item: OverlayItem) -> None:
        self._items.append(item)
