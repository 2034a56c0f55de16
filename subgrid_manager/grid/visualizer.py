"""
Rich text visualizer for grid pages.

Renders the state of a GridSession in the terminal: a header with the
entity name, a table with one column per grid column (linkable cells as
hyperlinks where the record service can build a record URL), and a
pagination footer.
"""

from typing import List, Optional

from rich.box import ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..dataverse.base import RecordService
from .models import GridColumn, GridPage, ProjectedCell
from .session import GridSession

class GridVisualizer:
    """Rich text visualizer for grid sessions."""

    # Default maximum length for cell values in display
    DEFAULT_MAX_LENGTH = 50

    def __init__(self, service: Optional[RecordService] = None,
                 console: Optional[Console] = None):
        """Initialize the visualizer.

        Args:
            service: Record service used to build record URLs for links
            console: Console to print to (a new one by default)
        """
        self.service = service
        self.console = console or Console()

    def show_session(self, session: GridSession):
        """Display columns, items and pagination of a session."""
        title = session.display_name or session.entity_name or 'Records'
        for error in session.errors:
            self.console.print(Panel(
                Text(str(error), style="bold red"),
                title=type(error).__name__,
                border_style="red",
            ))
        self.show_page(session.page, session.columns, title)

    def show_page(self, page: Optional[GridPage], columns: List[GridColumn], title: str = 'Records'):
        """Display one page as a table followed by its footer."""
        table = Table(title=title, show_header=True, header_style="bold", box=ROUNDED)

        keys = [column.key for column in columns]
        if not keys and page and page.items:
            keys = list(page.items[0].cells.keys())
            columns = []

        if columns:
            for column in columns:
                header = column.name
                if column.is_sorted:
                    header += " ↓" if column.is_sorted_descending else " ↑"
                table.add_column(header, style="cyan" if column.is_link_entity else "white")
        else:
            for key in keys:
                table.add_column(key, style="white")

        for item in (page.items if page else []):
            row = []
            for key in keys:
                cell = item.cells.get(key)
                row.append(self._format_cell(cell))
            table.add_row(*row)

        self.console.print(table)
        if page:
            self._show_footer(page)

    def _format_cell(self, cell: Optional[ProjectedCell]) -> Text:
        if cell is None or cell.display_name is None:
            return Text("")

        value = cell.display_name
        if len(value) > self.DEFAULT_MAX_LENGTH:
            value = value[:self.DEFAULT_MAX_LENGTH-3] + "..."

        if not cell.linkable:
            return Text(value)

        url = None
        if self.service and cell.target and cell.target.entity_name:
            url = self.service.get_record_url(cell.target.entity_name, cell.target.record_id)
        style = f"underline blue link {url}" if url else "underline blue"
        return Text(value, style=style)

    def _show_footer(self, page: GridPage):
        footer = Text()
        footer.append(f"{page.first_item_index} - {page.last_item_index}", style="bold")
        footer.append(f" of {page.total_count}")
        footer.append(f"    Page {page.current_page}", style="bold")
        footer.append("    ◀ prev" if page.previous_page_available else "", style="green")
        footer.append("    next ▶" if page.next_page_available else "", style="green")
        self.console.print(footer)
