"""
Grid engine: record projection, orchestration and display state.

This package turns FetchXml queries into pages of display-ready items:
- RecordView: typed access to raw records and their annotations
- RecordProjector: ordered formatting rules per attribute
- GridOrchestrator: fetch cycle producing a GridPage
- Column derivation, configuration input parsing and session state
"""

from .columns import build_columns, get_sorted_columns, sort_columns
from .input import get_page_size, is_json_valid, parse_raw_input
from .models import (
    GridColumn,
    GridConfig,
    GridPage,
    LookupTarget,
    ProjectedCell,
    ProjectedItem,
)
from .orchestrator import GridOrchestrator, compute_page_bounds, select_all_fields
from .projector import (
    ExecutionContext,
    ProjectionContext,
    RecordProjector,
    resolve_link_entity_cell_key,
)
from .records import RecordView
from .session import GridSession

__all__ = [
    'build_columns',
    'get_sorted_columns',
    'sort_columns',
    'get_page_size',
    'is_json_valid',
    'parse_raw_input',
    'GridColumn',
    'GridConfig',
    'GridPage',
    'LookupTarget',
    'ProjectedCell',
    'ProjectedItem',
    'GridOrchestrator',
    'compute_page_bounds',
    'select_all_fields',
    'ExecutionContext',
    'ProjectionContext',
    'RecordProjector',
    'resolve_link_entity_cell_key',
    'RecordView',
    'GridSession',
]
