"""
Subgrid Manager

A paginated, typed grid over Dataverse records selected by FetchXml.
This package provides functionality for:

- Query Analysis: entity, attributes, link-entities, aggregates and order
- Paging: window/page injection and total-count queries
- Metadata: attribute types and formats from the Web API
- Projection: platform-correct display text and record links per cell
- Orchestration: one fetch cycle per page with paging bookkeeping
"""

__version__ = "0.1.0"

from .dataverse.client import DataverseClient
from .grid.orchestrator import GridOrchestrator
from .grid.session import GridSession

__all__ = [
    "DataverseClient",
    "GridOrchestrator",
    "GridSession",
    "__version__"
]
