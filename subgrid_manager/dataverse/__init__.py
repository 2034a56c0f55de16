"""
Dataverse record service package.

Contains the RecordService contract the grid engine depends on, its
Web API implementation, the metadata models and whole-number formatting.
"""

from .base import RecordService
from .client import DataverseClient
from .formatting import format_duration, get_whole_number_display
from .metadata import (
    AttributeDescriptor,
    AttributeType,
    EntityMetadata,
    TimezoneDefinition,
)

__all__ = [
    'RecordService',
    'DataverseClient',
    'format_duration',
    'get_whole_number_display',
    'AttributeDescriptor',
    'AttributeType',
    'EntityMetadata',
    'TimezoneDefinition',
]
