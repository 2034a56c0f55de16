"""
Data models for the grid engine.

This module provides the structures produced for and consumed by the
presentation layer:

- ProjectedCell / ProjectedItem: display-ready cells of one record
- GridPage: the result of one orchestration cycle, with paging bookkeeping
- GridColumn: column definition derived from the query and metadata
- GridConfig: parsed configuration input with any configuration error
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from ..config.settings import DEFAULT_PAGE_SIZE
from ..dataverse.metadata import AttributeType
from ..query.exceptions import SubgridError

@dataclass(frozen=True)
class LookupTarget:
    """Record a linkable cell navigates to."""
    entity_name: Optional[str]
    record_id: Optional[str]

@dataclass(frozen=True)
class ProjectedCell:
    """
    One display-ready cell.

    Attributes:
        display_name: Text to show; None when the platform supplied no
            formatted value for a field that requires one
        linkable: Whether the cell should render as a navigation link
        attribute_type: Semantic type of the underlying attribute
        entity_name: Entity owning the attribute
        is_link_entity: True for attributes of a link-entity
        field_name: Attribute logical name (alias for aggregate cells)
        aggregate: True for cells of an aggregate query
        target: Navigation target of a linkable cell
    """
    display_name: Optional[str]
    linkable: bool
    attribute_type: AttributeType
    entity_name: str
    is_link_entity: bool
    field_name: str
    aggregate: bool = False
    target: Optional[LookupTarget] = None

@dataclass
class ProjectedItem:
    """A projected record: its id plus cells keyed by cell-key in column order."""
    id: str
    cells: Dict[str, ProjectedCell] = field(default_factory=dict)

    def keys(self) -> List[str]:
        return ['id', *self.cells.keys()]

    def __getitem__(self, key: str) -> ProjectedCell:
        return self.cells[key]

    def display_values(self) -> Dict[str, Optional[str]]:
        values = {'id': self.id}
        values.update({key: cell.display_name for key, cell in self.cells.items()})
        return values

@dataclass(frozen=True)
class GridPage:
    """
    Result of one orchestration cycle.

    Attributes:
        items: Projected records of the current page
        total_count: Records matched by the query, ignoring paging
        page_size: Window size actually used (explicit cap or page size)
        current_page: 1-based page number
        first_item_index: 1-based index of the first item, 0 when empty
        last_item_index: 1-based index of the last item, 0 when empty
        next_page_available: Whether a following page exists
        previous_page_available: Whether a preceding page exists
        fetch_xml: The paged query sent to the record service
    """
    items: List[ProjectedItem]
    total_count: int
    page_size: int
    current_page: int
    first_item_index: int
    last_item_index: int
    next_page_available: bool
    previous_page_available: bool
    fetch_xml: str = ''

    def to_dataframe(self) -> pd.DataFrame:
        """Display values of the page as a DataFrame, one row per item."""
        return pd.DataFrame([item.display_values() for item in self.items])

@dataclass(frozen=True)
class GridColumn:
    """
    A grid column.

    Attributes:
        key: Cell-key of the values shown in this column
        name: Header text
        field_name: Cell-key matched against order directives
        aria_label: Attribute logical name (alias for aggregates)
        min_width: Minimum width in pixels
        max_width: Maximum width in pixels
        is_link_entity: True for link-entity attributes
        is_sorted: Whether the query orders by this column
        is_sorted_descending: Sort direction when sorted
    """
    key: str
    name: str
    field_name: str
    aria_label: str
    min_width: int
    max_width: int
    is_link_entity: bool = False
    is_sorted: bool = False
    is_sorted_descending: bool = False

@dataclass
class GridConfig:
    """
    Grid configuration parsed from raw input.

    A configuration error does not prevent the fields that could be
    recovered from being applied; it is attached in `error` instead.
    """
    fetch_xml: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE
    new_button_visibility: bool = False
    delete_button_visibility: bool = False
    error: Optional[SubgridError] = None
