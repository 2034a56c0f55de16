"""
Data models for parsed FetchXml documents.

This module provides immutable dataclasses describing the structural facts
of a FetchXml query: the root entity, its attributes, link-entities, the
order directive and the paging attributes carried by <fetch>.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

@dataclass(frozen=True)
class AttributeRef:
    """An <attribute> declared directly under the root <entity>."""
    name: str
    alias: Optional[str] = None

@dataclass(frozen=True)
class LinkEntityAttribute:
    """
    An <attribute> declared directly under a <link-entity>.

    Attributes:
        name: Logical name of the attribute on the linked entity
        link_entity_alias: Alias of the owning link-entity, if declared
        attribute_alias: Alias of the attribute itself, if declared
    """
    name: str
    link_entity_alias: Optional[str] = None
    attribute_alias: Optional[str] = None

@dataclass(frozen=True)
class LinkEntity:
    """
    A <link-entity> found while walking the document.

    Attributes:
        name: Logical name of the linked entity
        alias: Declared alias, if any
        position: 0-based position among all link-entities in document order
        attributes: Attributes owned by this link-entity only
    """
    name: str
    alias: Optional[str]
    position: int
    attributes: Tuple[LinkEntityAttribute, ...] = ()

@dataclass(frozen=True)
class OrderClause:
    """
    The first <order> directive of the query.

    Attributes:
        field_or_alias: Ordered attribute name, or alias when is_alias
        descending: Sort direction
        is_alias: True for <order alias="..."/>
        link_entity_position: Position of the owning link-entity, None
            for an order on the root entity
    """
    field_or_alias: str
    descending: bool = False
    is_alias: bool = False
    link_entity_position: Optional[int] = None

@dataclass(frozen=True)
class QueryDocument:
    """
    Structural facts of one FetchXml query.

    Parsed fresh on every analysis call and never mutated; rewriting
    produces a new query string.

    Attributes:
        entity_name: Root entity logical name ('' if absent)
        link_entities: Link-entities in document order, nested ones included
        root_attributes: Attributes declared directly under the root entity
        all_attributes: True when the root entity declares <all-attributes/>
        aggregate: True iff fetch/@aggregate is exactly 'true'
        order: First order directive, root entity before link-entities
        explicit_cap: Existing count (or top) value, 0 when absent
        top: Raw fetch/@top value
        count: Raw fetch/@count value
        page: Raw fetch/@page value
    """
    entity_name: str = ''
    link_entities: Tuple[LinkEntity, ...] = ()
    root_attributes: Tuple[AttributeRef, ...] = ()
    all_attributes: bool = False
    aggregate: bool = False
    order: Optional[OrderClause] = None
    explicit_cap: int = 0
    top: Optional[str] = None
    count: Optional[str] = None
    page: Optional[str] = None

    @property
    def root_attribute_names(self) -> Tuple[str, ...]:
        return tuple(attr.name for attr in self.root_attributes)

    @property
    def link_entity_names(self) -> Tuple[str, ...]:
        """Distinct link-entity names in order of first appearance."""
        seen = []
        for link_entity in self.link_entities:
            if link_entity.name not in seen:
                seen.append(link_entity.name)
        return tuple(seen)
