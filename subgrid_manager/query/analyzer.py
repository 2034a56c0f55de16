"""
FetchXml structure analysis.

This module parses FetchXml query strings into QueryDocument objects
with a single structural walk of the parsed tree, and exposes one function
per structural fact:

- Root entity name
- Root attributes and their aliases
- Link-entities (nested ones included) and their own attributes
- Aggregate flag
- First order directive (root entity first, then link-entities)
- Explicit record cap (count or top)

Malformed documents raise ParseError from every function except
parse_explicit_cap and get_fetch_xml_parser_error, which report rather
than raise.
"""

import logging
from typing import Dict, List, Optional, Tuple

from lxml import etree

from ..config.settings import AGGREGATE_TRUE
from .exceptions import ParseError, ValidationError
from .models import (
    AttributeRef, LinkEntity, LinkEntityAttribute, OrderClause, QueryDocument
)

logger = logging.getLogger(__name__)

def to_int(value: Optional[str]) -> int:
    """Convert a FetchXml numeric attribute, treating junk as 0."""
    if value is None:
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0

def child_elements(element, tag: str) -> List:
    """Direct element children with the given tag, comments skipped."""
    return [child for child in element if isinstance(child.tag, str) and child.tag == tag]

def parse_fetch_element(query: Optional[str]):
    """
    Parse a FetchXml string and return its <fetch> root element.

    Args:
        query: FetchXml text

    Returns:
        lxml element for <fetch>

    Raises:
        ParseError: For empty input, malformed XML or a non-<fetch> root
    """
    if not query or not query.strip():
        raise ParseError("FetchXml is empty")

    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(query.strip().encode('utf-8'), parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"FetchXml is not well-formed: {e}") from e

    if root.tag != 'fetch':
        raise ParseError(f"Expected <fetch> root element, found <{root.tag}>")
    return root

class FetchXmlAnalyzer:
    """
    Walks a parsed FetchXml tree once and collects a QueryDocument.

    Link-entities are collected by position in the tree, so two
    link-entities sharing a name keep their own attributes.
    """

    def analyze(self, query: Optional[str]) -> QueryDocument:
        """
        Parse a query into its structural facts.

        Args:
            query: FetchXml text

        Returns:
            QueryDocument describing the query

        Raises:
            ParseError: For malformed documents or attributes without a name
        """
        fetch = parse_fetch_element(query)
        entity = next(iter(child_elements(fetch, 'entity')), None)

        top = fetch.get('top')
        count = fetch.get('count')

        document = QueryDocument(
            entity_name=entity.get('name', '') if entity is not None else '',
            link_entities=self._walk_link_entities(entity) if entity is not None else (),
            root_attributes=self._root_attributes(entity) if entity is not None else (),
            all_attributes=bool(entity is not None and child_elements(entity, 'all-attributes')),
            aggregate=fetch.get('aggregate') == AGGREGATE_TRUE,
            order=self._query_order(entity) if entity is not None else None,
            explicit_cap=to_int(count) or to_int(top),
            top=top,
            count=count,
            page=fetch.get('page'),
        )
        logger.debug(
            f"Analyzed FetchXml for '{document.entity_name}': "
            f"{len(document.root_attributes)} attributes, "
            f"{len(document.link_entities)} link-entities, aggregate={document.aggregate}"
        )
        return document

    def _root_attributes(self, entity) -> Tuple[AttributeRef, ...]:
        attributes = []
        for attr in child_elements(entity, 'attribute'):
            attributes.append(AttributeRef(name=self._attribute_name(attr), alias=attr.get('alias')))
        return tuple(attributes)

    def _walk_link_entities(self, entity) -> Tuple[LinkEntity, ...]:
        found: List[LinkEntity] = []

        def visit(parent):
            for link in child_elements(parent, 'link-entity'):
                name = link.get('name')
                if not name:
                    raise ParseError("<link-entity> is missing the 'name' attribute")
                alias = link.get('alias')
                attributes = tuple(
                    LinkEntityAttribute(
                        name=self._attribute_name(attr),
                        link_entity_alias=alias,
                        attribute_alias=attr.get('alias'),
                    )
                    for attr in child_elements(link, 'attribute')
                )
                found.append(LinkEntity(
                    name=name,
                    alias=alias,
                    position=len(found),
                    attributes=attributes,
                ))
                visit(link)

        visit(entity)
        return tuple(found)

    def _query_order(self, entity) -> Optional[OrderClause]:
        """
        First order of the root entity; failing that, the first order
        found inside a link-entity, visiting link-entities in the same
        order as _walk_link_entities.
        """
        order = self._first_order(entity)
        if order:
            return order

        position = 0
        pending = list(reversed(child_elements(entity, 'link-entity')))
        while pending:
            link = pending.pop()
            order = self._first_order(link, link_entity_position=position)
            if order:
                return order
            position += 1
            pending.extend(reversed(child_elements(link, 'link-entity')))
        return None

    def _first_order(self, element, link_entity_position: Optional[int] = None) -> Optional[OrderClause]:
        orders = child_elements(element, 'order')
        if not orders:
            return None
        order = orders[0]
        descending = order.get('descending') == 'true'
        if order.get('attribute'):
            return OrderClause(field_or_alias=order.get('attribute'), descending=descending,
                               link_entity_position=link_entity_position)
        if order.get('alias'):
            return OrderClause(field_or_alias=order.get('alias'), descending=descending, is_alias=True,
                               link_entity_position=link_entity_position)
        return None

    @staticmethod
    def _attribute_name(attr) -> str:
        name = attr.get('name')
        if not name:
            raise ParseError("<attribute> is missing the 'name' attribute")
        return name

_analyzer = FetchXmlAnalyzer()

def analyze(query: Optional[str]) -> QueryDocument:
    """Parse a query into a QueryDocument (see FetchXmlAnalyzer.analyze)."""
    return _analyzer.analyze(query)

def get_fetch_xml_parser_error(query: Optional[str]) -> Optional[str]:
    """Return the parser error message for a query, or None when it parses."""
    try:
        analyze(query)
    except ParseError as e:
        return str(e)
    return None

def parse_entity_name(query: Optional[str]) -> str:
    """Root entity logical name, '' when the query has no <entity>."""
    return analyze(query).entity_name

def parse_link_entities(query: Optional[str]) -> List[LinkEntity]:
    """All link-entities in document order, each with its own attributes."""
    return list(analyze(query).link_entities)

def group_link_entity_attributes(query: Optional[str]) -> Dict[str, List[LinkEntityAttribute]]:
    """
    Link-entity attributes keyed by link-entity name.

    Link-entities sharing a name are grouped under that name in
    document order.
    """
    grouped: Dict[str, List[LinkEntityAttribute]] = {}
    for link_entity in analyze(query).link_entities:
        grouped.setdefault(link_entity.name, []).extend(link_entity.attributes)
    return grouped

def parse_root_attribute_names(query: Optional[str]) -> List[str]:
    """Names of attributes declared directly under the root entity."""
    return list(analyze(query).root_attribute_names)

def parse_alias_names(query: Optional[str]) -> List[Optional[str]]:
    """Aliases of root attributes in declaration order; None where undeclared."""
    return [attr.alias for attr in analyze(query).root_attributes]

def require_alias_names(document: QueryDocument) -> List[str]:
    """
    Aliases of root attributes, all of which must be declared in aggregate mode.

    Raises:
        ValidationError: If the query is aggregate and an attribute has no alias
    """
    aliases = [attr.alias for attr in document.root_attributes]
    if document.aggregate:
        missing = [attr.name for attr in document.root_attributes if not attr.alias]
        if missing:
            raise ValidationError(
                f"Aggregate query attributes must declare an alias: {', '.join(missing)}"
            )
    return aliases

def is_aggregate(query: Optional[str]) -> bool:
    """True only when fetch/@aggregate is exactly 'true'."""
    return analyze(query).aggregate

def parse_order(query: Optional[str]) -> Optional[OrderClause]:
    """First order directive, by attribute or alias; a root entity order wins over link-entity orders."""
    return analyze(query).order

def parse_explicit_cap(query: Optional[str]) -> int:
    """
    Existing record cap of the query.

    Returns:
        fetch/@count if non-zero, else fetch/@top, else 0. Also 0 for an
        empty query or one that fails to parse.
    """
    if not query:
        return 0
    try:
        return analyze(query).explicit_cap
    except ParseError as e:
        logger.warning(f"Could not read record cap from FetchXml: {e}")
        return 0
