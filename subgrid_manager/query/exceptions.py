"""
Exceptions for query and grid operations.

This module defines custom exceptions used across the subgrid engine
to handle various error conditions:

- ParseError: malformed FetchXml
- ValidationError: invalid configuration input or missing aggregate alias
- MetadataError: unknown entity or field reported by the metadata service
- TransportError: any failure talking to the remote record service
"""

from typing import Optional

class SubgridError(Exception):
    """Base class for all subgrid engine errors."""
    pass

class ParseError(SubgridError):
    """Raised when a FetchXml string cannot be parsed."""
    pass

class ValidationError(SubgridError):
    """Raised when input is structurally valid but breaks a contract.

    Covers configuration objects carrying disallowed keys and aggregate
    queries whose attributes do not all declare an alias.
    """
    pass

class MetadataError(SubgridError):
    """Raised when the metadata service does not know an entity or field."""

    def __init__(self, message: str, entity_name: Optional[str] = None,
                 field_name: Optional[str] = None):
        super().__init__(message)
        self.entity_name = entity_name
        self.field_name = field_name

class TransportError(SubgridError):
    """Raised when a remote call fails.

    Attributes:
        status_code: HTTP status code, when a response was received
        response_text: Body of the failed response, when available
    """

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_text: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text
