"""
FetchXml query analysis and rewriting.

This package provides:
- Structural analysis of FetchXml (entity, attributes, link-entities, order)
- Paging rewrites and count-query derivation
- The exception hierarchy shared by the whole engine
"""

from .analyzer import (
    FetchXmlAnalyzer,
    analyze,
    get_fetch_xml_parser_error,
    group_link_entity_attributes,
    is_aggregate,
    parse_alias_names,
    parse_entity_name,
    parse_explicit_cap,
    parse_link_entities,
    parse_order,
    parse_root_attribute_names,
    require_alias_names,
)
from .exceptions import (
    MetadataError,
    ParseError,
    SubgridError,
    TransportError,
    ValidationError,
)
from .models import (
    AttributeRef,
    LinkEntity,
    LinkEntityAttribute,
    OrderClause,
    QueryDocument,
)
from .paging import (
    add_paging_to_fetch_xml,
    build_count_fetch_xml,
    strip_paging_attributes,
)

__all__ = [
    'FetchXmlAnalyzer',
    'analyze',
    'get_fetch_xml_parser_error',
    'group_link_entity_attributes',
    'is_aggregate',
    'parse_alias_names',
    'parse_entity_name',
    'parse_explicit_cap',
    'parse_link_entities',
    'parse_order',
    'parse_root_attribute_names',
    'require_alias_names',
    'add_paging_to_fetch_xml',
    'build_count_fetch_xml',
    'strip_paging_attributes',
    'SubgridError',
    'ParseError',
    'ValidationError',
    'MetadataError',
    'TransportError',
    'AttributeRef',
    'LinkEntity',
    'LinkEntityAttribute',
    'OrderClause',
    'QueryDocument',
]
