"""
Command-line interface for the Subgrid Manager.

Renders one page of a FetchXml-driven grid against a Dataverse
organization:

- Input: a FetchXml file, or raw configuration text (FetchXml or the
  JSON configuration object)
- Paging: page number and page size overrides
- Layout: allocated width used for column sizing
- Output: rich table with column headers, sort markers and a
  pagination footer

Connection settings (DATAVERSE_URL, DATAVERSE_TOKEN) come from the
environment or a .env file at the project root.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from rich.console import Console

from .config.logging_config import cleanup_logging, setup_logging
from .config.settings import DEFAULT_ALLOCATED_WIDTH
from .dataverse.client import DataverseClient
from .grid.input import get_page_size, parse_raw_input
from .grid.session import GridSession
from .grid.visualizer import GridVisualizer
from .query.exceptions import SubgridError

def setup_argument_parser():
    """Set up the argument parser."""
    parser = argparse.ArgumentParser(
        description="Dataverse FetchXml Subgrid CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
        # Render the first page of a query stored in a file
        subgrid-manager --fetch-xml queries/accounts.xml

        # Third page, ten records per page
        subgrid-manager --fetch-xml queries/accounts.xml --page 3 --page-size 10

        # JSON configuration input
        subgrid-manager --input '{"fetchXml": "<fetch>...</fetch>", "pageSize": 5}'

        # Enable verbose output
        subgrid-manager -v --fetch-xml queries/accounts.xml
        """
    )

    parser.add_argument('-v', '--verbose', action='store_true',
                        help="Enable verbose logging")

    input_group = parser.add_argument_group('Input')
    source = input_group.add_mutually_exclusive_group(required=True)
    source.add_argument('--fetch-xml', type=str, metavar='FILE',
                        help='File containing the FetchXml query')
    source.add_argument('--input', type=str, metavar='TEXT',
                        help='FetchXml text or JSON configuration object')

    paging_group = parser.add_argument_group('Paging and Layout')
    paging_group.add_argument('--page', type=int, default=1,
                              help='1-based page number to display (default: 1)')
    paging_group.add_argument('--page-size', type=int,
                              help='Records per page, overrides the configuration input')
    paging_group.add_argument('--width', type=int, default=DEFAULT_ALLOCATED_WIDTH,
                              help=f'Allocated grid width in pixels (default: {DEFAULT_ALLOCATED_WIDTH})')

    return parser

async def render_grid(session: GridSession, page: int, visualizer: GridVisualizer) -> bool:
    """
    Refresh columns and the requested page, then display the session.

    Returns:
        True when the configuration was valid and the page was fetched
        without error
    """
    await session.refresh_columns()
    if page > 1:
        await session.set_page(page)
    else:
        await session.refresh_items()
    visualizer.show_session(session)
    return not session.errors

def main():
    """Main entry point for the CLI."""
    args = setup_argument_parser().parse_args()
    setup_logging(verbose=args.verbose)
    console = Console()

    try:
        if args.page < 1:
            logging.error("--page must be at least 1")
            return 1

        if args.fetch_xml:
            path = Path(args.fetch_xml)
            if not path.is_file():
                logging.error(f"FetchXml file not found: {path}")
                return 1
            raw = path.read_text(encoding='utf-8')
        else:
            raw = args.input

        config = parse_raw_input(raw)
        if args.page_size is not None:
            config.page_size = get_page_size(args.page_size)
        if config.error:
            logging.warning(f"Configuration problem: {config.error}")
        if not config.fetch_xml:
            logging.error("No FetchXml query supplied")
            return 1

        client = DataverseClient()
        try:
            session = GridSession(client, config, allocated_width=args.width)
            visualizer = GridVisualizer(service=client, console=console)
            success = asyncio.run(render_grid(session, args.page, visualizer))
        finally:
            client.close()

        return 0 if success else 1

    except ValueError as e:
        logging.error(str(e))
        return 1
    except SubgridError as e:
        logging.error(f"Error rendering grid: {str(e)}")
        logging.debug("Stack trace:", exc_info=True)
        return 1
    finally:
        cleanup_logging()

if __name__ == '__main__':
    raise SystemExit(main())
