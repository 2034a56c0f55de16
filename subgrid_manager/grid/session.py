"""
Grid session state.

GridSession holds what the presentation layer reads (columns, entity
display name, the current GridPage, error and loading flags) and the two
refresh cycles that write it:

- refresh_columns: re-derives columns and display name after a change
  of query or available width
- refresh_items: re-derives the page after a change of page or query

State is written only when a cycle finishes. A failed cycle records its
error and leaves the previous page visible; the next successful cycle
clears it. A configuration error found while parsing the input is held
separately in config_error and is never cleared by a fetch cycle.

Every cycle takes a generation number; a cycle that finishes after a
newer one of the same kind has started drops its result, so the most
recently started cycle decides what is shown.
"""

import logging
from typing import List, Optional

from ..config.settings import DEFAULT_ALLOCATED_WIDTH
from ..dataverse.base import RecordService
from ..query.analyzer import parse_entity_name
from ..query.exceptions import SubgridError
from .columns import get_sorted_columns
from .models import GridColumn, GridConfig, GridPage, ProjectedItem
from .orchestrator import GridOrchestrator

class GridSession:
    """Display state of one grid and the cycles that refresh it."""

    def __init__(self, service: RecordService, config: GridConfig,
                 allocated_width: int = DEFAULT_ALLOCATED_WIDTH):
        """
        Initialize the session.

        Args:
            service: Record service to query
            config: Parsed configuration; its error, if any, is kept in
                config_error for as long as the session lives
            allocated_width: Width available to the grid, in pixels
        """
        self.service = service
        self.config = config
        self.allocated_width = allocated_width
        self.orchestrator = GridOrchestrator(service)
        self.logger = logging.getLogger(__name__)

        self.columns: List[GridColumn] = []
        self.display_name = ''
        self.page: Optional[GridPage] = None
        self.current_page = 1
        self.error: Optional[SubgridError] = None
        self.config_error: Optional[SubgridError] = config.error
        self.is_loading = False

        self._columns_generation = 0
        self._items_generation = 0
        self._columns_fetch_xml = config.fetch_xml

    @property
    def items(self) -> List[ProjectedItem]:
        return self.page.items if self.page else []

    @property
    def errors(self) -> List[SubgridError]:
        """Configuration error followed by the last fetch-cycle error, where present."""
        return [e for e in (self.config_error, self.error) if e is not None]

    @property
    def entity_name(self) -> str:
        try:
            return parse_entity_name(self.config.fetch_xml)
        except SubgridError:
            return ''

    async def refresh_columns(self, allocated_width: Optional[int] = None) -> List[GridColumn]:
        """
        Re-derive columns and the entity display name.

        Resets to the first page when the query changed since the last
        column refresh.
        """
        if allocated_width is not None:
            self.allocated_width = allocated_width
        self._columns_generation += 1
        generation = self._columns_generation
        fetch_xml = self.config.fetch_xml

        try:
            columns = await get_sorted_columns(fetch_xml, self.allocated_width, self.service)
            display_name = await self.service.get_entity_display_name(parse_entity_name(fetch_xml))
        except SubgridError as e:
            if generation == self._columns_generation:
                self.logger.error(f"Column refresh failed: {str(e)}")
                self.error = e
            return self.columns

        if generation != self._columns_generation:
            self.logger.debug(f"Dropping columns of superseded cycle {generation}")
            return self.columns

        self.columns = columns
        self.display_name = display_name
        if fetch_xml != self._columns_fetch_xml:
            self.current_page = 1
            self._columns_fetch_xml = fetch_xml
        return columns

    async def refresh_items(self) -> Optional[GridPage]:
        """
        Run a fetch cycle for the current query and page.

        Returns:
            The new GridPage, or None when the cycle failed or was superseded
        """
        self._items_generation += 1
        generation = self._items_generation
        self.is_loading = True

        try:
            page = await self.orchestrator.get_items(
                self.config.fetch_xml, self.config.page_size, self.current_page
            )
        except SubgridError as e:
            if generation == self._items_generation:
                self.logger.error(f"Fetch cycle failed, keeping previous items: {str(e)}")
                self.error = e
                self.is_loading = False
            return None

        if generation != self._items_generation:
            self.logger.debug(f"Dropping page of superseded cycle {generation}")
            return None

        self.page = page
        self.error = None
        self.is_loading = False
        return page

    async def set_page(self, page_number: int) -> Optional[GridPage]:
        """Move to a page and refresh items."""
        if page_number < 1:
            raise ValueError(f"Page number must be at least 1, got {page_number}")
        self.current_page = page_number
        return await self.refresh_items()

    async def next_page(self) -> Optional[GridPage]:
        if self.page and not self.page.next_page_available:
            return self.page
        return await self.set_page(self.current_page + 1)

    async def previous_page(self) -> Optional[GridPage]:
        if self.current_page <= 1:
            return self.page
        return await self.set_page(self.current_page - 1)

    async def set_fetch_xml(self, fetch_xml: str) -> Optional[GridPage]:
        """Change the query: refresh columns (resetting the page), then items."""
        self.config.fetch_xml = fetch_xml
        await self.refresh_columns()
        return await self.refresh_items()
