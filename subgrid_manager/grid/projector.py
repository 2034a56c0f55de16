"""
Record projection: raw records to display-ready cells.

The projector applies an ordered rule table to every (record, attribute)
pair; the first matching rule decides where the display text comes from
and whether the cell links to a record:

1. Aggregate query          -> raw value at the alias, not linkable
2. Whole number             -> duration/timezone formatter
3. Money, picklists, dates,
   two options              -> formatted-value annotation
4. Link-entity reference or
   two options              -> formatted-value of the aliased key, linkable
5. Link-entity, value present -> raw value
6. Primary name attribute   -> raw value, linkable to the record itself
7. Root reference           -> formatted-value of '_{field}_value', linkable
8. Value present            -> raw value
9. Otherwise                -> ''
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional, Sequence, Tuple

from ..dataverse.base import RecordService
from ..dataverse.metadata import (
    ENTITY_REFERENCE_TYPES,
    FORMATTED_VALUE_TYPES,
    AttributeType,
    EntityMetadata,
    TimezoneDefinition,
)
from ..query.exceptions import ValidationError
from ..query.models import LinkEntity, LinkEntityAttribute
from .models import LookupTarget, ProjectedCell
from .records import RecordView

logger = logging.getLogger(__name__)

class ExecutionContext(Enum):
    """Where an attribute sits in the query."""
    ROOT = auto()
    LINK_ENTITY = auto()
    AGGREGATE = auto()

# Link-entity types whose aliased formatted value is shown as a link
LINK_ENTITY_LINKABLE_TYPES = ENTITY_REFERENCE_TYPES | {AttributeType.TWO_OPTIONS}

@dataclass(frozen=True)
class ProjectionContext:
    """
    Everything the rules need to know about one attribute.

    Attributes:
        mode: Root, link-entity or aggregate attribute
        entity_metadata: Metadata of the entity owning the attribute
        attribute_type: Semantic type of the attribute
        field_name: Attribute logical name, used for metadata lookups
        cell_key: Key of the value in the record and of the produced cell
        aggregate_alias: Alias holding the value of an aggregate attribute
        timezone_definitions: Definitions for timezone whole numbers
    """
    mode: ExecutionContext
    entity_metadata: EntityMetadata
    attribute_type: AttributeType
    field_name: str
    cell_key: str
    aggregate_alias: Optional[str] = None
    timezone_definitions: Sequence[TimezoneDefinition] = ()

    @property
    def is_link_entity(self) -> bool:
        return self.mode is ExecutionContext.LINK_ENTITY

def resolve_link_entity_cell_key(link_entity: LinkEntity, attribute: LinkEntityAttribute) -> str:
    """
    Cell-key of a link-entity attribute.

    Priority: the attribute's alias, then '{link alias}.{name}', then
    '{link name}{position + 1}.{name}'.
    """
    if attribute.attribute_alias:
        return attribute.attribute_alias
    if link_entity.alias:
        return f"{link_entity.alias}.{attribute.name}"
    return f"{link_entity.name}{link_entity.position + 1}.{attribute.name}"

def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)

class RecordProjector:
    """Turns records into display cells using the ordered rule table."""

    def __init__(self, service: RecordService):
        """Initialize with the record service providing whole-number formatting."""
        self.service = service

    def project(self, record: RecordView, context: ProjectionContext) -> Dict[str, ProjectedCell]:
        """
        Project one attribute of one record.

        Args:
            record: Wrapped raw record
            context: Attribute context

        Returns:
            Mapping of the single produced cell-key to its cell

        Raises:
            ValidationError: For an aggregate attribute without an alias
        """
        if context.mode is ExecutionContext.AGGREGATE:
            if not context.aggregate_alias:
                raise ValidationError(
                    f"Aggregate attribute '{context.field_name}' has no alias"
                )
            cell = ProjectedCell(
                display_name=_text(record.raw_value(context.aggregate_alias)),
                linkable=False,
                attribute_type=context.attribute_type,
                entity_name=context.entity_metadata.entity_name,
                is_link_entity=False,
                field_name=context.aggregate_alias,
                aggregate=True,
            )
            return {context.aggregate_alias: cell}

        display_name, linkable, target = self._resolve(record, context)
        cell = ProjectedCell(
            display_name=display_name,
            linkable=linkable,
            attribute_type=context.attribute_type,
            entity_name=context.entity_metadata.entity_name,
            is_link_entity=context.is_link_entity,
            field_name=context.field_name,
            target=target,
        )
        return {context.cell_key: cell}

    def _resolve(self, record: RecordView,
                 context: ProjectionContext) -> Tuple[Optional[str], bool, Optional[LookupTarget]]:
        attribute_type = context.attribute_type
        key = context.cell_key

        if attribute_type is AttributeType.WHOLE_NUMBER:
            descriptor = context.entity_metadata.attribute(context.field_name)
            display = self.service.get_whole_number_display(
                descriptor.format, record.record, key, context.timezone_definitions
            )
            return display, False, None

        if attribute_type in FORMATTED_VALUE_TYPES:
            return record.formatted_value(key), False, None

        if context.mode is ExecutionContext.LINK_ENTITY:
            if attribute_type in LINK_ENTITY_LINKABLE_TYPES:
                return (record.lookup_formatted_value(key, is_link_entity=True), True,
                        record.lookup_target(key, is_link_entity=True))
            if record.has(key):
                return _text(record.raw_value(key)), False, None
            return '', False, None

        if context.mode is not ExecutionContext.ROOT:
            raise ValueError(f"Unhandled execution context: {context.mode}")

        metadata = context.entity_metadata
        if context.field_name == metadata.primary_name_attribute:
            id_attribute = metadata.primary_id_attribute or f"{metadata.entity_name}id"
            target = LookupTarget(entity_name=metadata.entity_name,
                                  record_id=record.record_id(id_attribute))
            return _text(record.raw_value(key)), True, target

        if attribute_type in ENTITY_REFERENCE_TYPES:
            return (record.lookup_formatted_value(key), True, record.lookup_target(key))

        if record.has(key):
            return _text(record.raw_value(key)), False, None

        return '', False, None
