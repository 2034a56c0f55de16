"""
Base interface for remote record services.

The grid engine talks to its data source only through RecordService.
Implementations provide record retrieval, metadata, timezone definitions
and record counts; formatting helpers shared by every implementation
live here as concrete methods.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .formatting import get_whole_number_display
from .metadata import EntityMetadata, TimezoneDefinition

class RecordService(ABC):
    """Abstract async record service consumed by the grid orchestrator."""

    @abstractmethod
    async def retrieve_records(self, fetch_xml: str) -> List[Dict[str, Any]]:
        """Run a FetchXml query and return the raw records.

        Raises:
            TransportError: If the remote call fails
        """
        pass

    @abstractmethod
    async def get_entity_metadata(self, entity_name: str,
                                  field_names: Sequence[str]) -> EntityMetadata:
        """Metadata of an entity restricted to the given fields.

        Raises:
            MetadataError: If the entity or any field is unknown
            TransportError: If the remote call fails
        """
        pass

    @abstractmethod
    async def get_timezone_definitions(self) -> List[TimezoneDefinition]:
        """All timezone definitions known to the platform."""
        pass

    @abstractmethod
    async def get_records_count(self, fetch_xml: str) -> int:
        """Total number of records a query matches, ignoring paging."""
        pass

    @abstractmethod
    async def get_entity_display_name(self, entity_name: str) -> str:
        """User-facing label of an entity."""
        pass

    def get_whole_number_display(self, format: Optional[str],
                                 record: Mapping[str, Any],
                                 field_name: str,
                                 timezone_definitions: Sequence[TimezoneDefinition]) -> str:
        """Render a duration/timezone-sensitive whole-number field."""
        return get_whole_number_display(format, record, field_name, timezone_definitions)

    def get_record_url(self, entity_name: str, record_id: str) -> Optional[str]:
        """URL that opens a record, or None when the service has no web client."""
        return None
