"""
Metadata models for Dataverse entities and attributes.

This module defines the typed view of entity metadata consumed by the
record projector:

- AttributeType: semantic attribute types that drive display formatting
- AttributeDescriptor: type, format and label of one attribute
- EntityMetadata: attributes plus primary name/id of one entity
- TimezoneDefinition: timezone code and its user-facing name

It also converts Web API metadata payloads into these models.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterable, List, Optional

from ..query.exceptions import MetadataError

class AttributeType(Enum):
    """Attribute types that the projector formats differently.

    Every Web API attribute type not listed here maps to OTHER.
    """
    WHOLE_NUMBER = auto()
    MONEY = auto()
    PICKLIST = auto()
    DATE_TIME = auto()
    MULTI_SELECT_PICKLIST = auto()
    TWO_OPTIONS = auto()
    LOOKUP = auto()
    OWNER = auto()
    CUSTOMER = auto()
    OTHER = auto()

    @classmethod
    def from_web_api(cls, attribute_type: Optional[str],
                     type_name: Optional[str] = None) -> 'AttributeType':
        """Map Web API AttributeType / AttributeTypeName values to a member."""
        if type_name == 'MultiSelectPicklistType':
            return cls.MULTI_SELECT_PICKLIST
        return _WEB_API_TYPES.get(attribute_type or '', cls.OTHER)

    def __str__(self) -> str:
        return self.name.lower()

_WEB_API_TYPES = {
    'Integer': AttributeType.WHOLE_NUMBER,
    'Money': AttributeType.MONEY,
    'Picklist': AttributeType.PICKLIST,
    'State': AttributeType.PICKLIST,
    'Status': AttributeType.PICKLIST,
    'DateTime': AttributeType.DATE_TIME,
    'Boolean': AttributeType.TWO_OPTIONS,
    'Lookup': AttributeType.LOOKUP,
    'Owner': AttributeType.OWNER,
    'Customer': AttributeType.CUSTOMER,
}

# Types whose display text comes from the formatted-value annotation
FORMATTED_VALUE_TYPES = frozenset({
    AttributeType.MONEY,
    AttributeType.PICKLIST,
    AttributeType.DATE_TIME,
    AttributeType.MULTI_SELECT_PICKLIST,
    AttributeType.TWO_OPTIONS,
})

# Types that reference another record
ENTITY_REFERENCE_TYPES = frozenset({
    AttributeType.LOOKUP,
    AttributeType.OWNER,
    AttributeType.CUSTOMER,
})

@dataclass(frozen=True)
class AttributeDescriptor:
    """
    Metadata of a single attribute.

    Attributes:
        field_name: Attribute logical name
        attribute_type: Semantic type driving display formatting
        format: Whole-number format (duration, timezone, language, ...)
        display_name: User-facing label
    """
    field_name: str
    attribute_type: AttributeType
    format: Optional[str] = None
    display_name: Optional[str] = None

@dataclass(frozen=True)
class EntityMetadata:
    """
    Metadata of one entity, obtained once per entity and never modified.

    Attributes:
        entity_name: Entity logical name
        attributes: Attribute descriptors keyed by logical name
        primary_name_attribute: The entity's primary display field
        primary_id_attribute: Primary key attribute
        display_name: User-facing entity label
        entity_set_name: Web API collection name
    """
    entity_name: str
    attributes: Dict[str, AttributeDescriptor] = field(default_factory=dict)
    primary_name_attribute: Optional[str] = None
    primary_id_attribute: Optional[str] = None
    display_name: Optional[str] = None
    entity_set_name: Optional[str] = None

    def attribute(self, field_name: str) -> AttributeDescriptor:
        """Descriptor for a field; MetadataError if the entity has no such field."""
        try:
            return self.attributes[field_name]
        except KeyError:
            raise MetadataError(
                f"Entity '{self.entity_name}' has no attribute '{field_name}'",
                entity_name=self.entity_name,
                field_name=field_name,
            ) from None

    def restricted_to(self, field_names: Iterable[str]) -> 'EntityMetadata':
        """
        Copy holding only the requested fields.

        Raises:
            MetadataError: If any requested field is unknown
        """
        attributes = {name: self.attribute(name) for name in field_names}
        return EntityMetadata(
            entity_name=self.entity_name,
            attributes=attributes,
            primary_name_attribute=self.primary_name_attribute,
            primary_id_attribute=self.primary_id_attribute,
            display_name=self.display_name,
            entity_set_name=self.entity_set_name,
        )

@dataclass(frozen=True)
class TimezoneDefinition:
    """A Dataverse timezone: numeric code and user-facing name."""
    code: int
    name: str

def _label(value: Optional[Dict[str, Any]]) -> Optional[str]:
    """Extract the user-localized text of a Web API Label object."""
    if not value:
        return None
    localized = value.get('UserLocalizedLabel') or {}
    return localized.get('Label')

def parse_entity_metadata(definition: Dict[str, Any],
                          integer_formats: Optional[Dict[str, str]] = None) -> EntityMetadata:
    """
    Build EntityMetadata from an EntityDefinitions payload.

    Args:
        definition: EntityDefinitions response with Attributes expanded
        integer_formats: Whole-number Format values keyed by attribute name

    Returns:
        EntityMetadata for the entity
    """
    integer_formats = integer_formats or {}
    attributes = {}
    for attr in definition.get('Attributes', []):
        name = attr.get('LogicalName')
        if not name:
            continue
        attribute_type = AttributeType.from_web_api(
            attr.get('AttributeType'),
            (attr.get('AttributeTypeName') or {}).get('Value'),
        )
        attributes[name] = AttributeDescriptor(
            field_name=name,
            attribute_type=attribute_type,
            format=integer_formats.get(name),
            display_name=_label(attr.get('DisplayName')) or name,
        )

    return EntityMetadata(
        entity_name=definition.get('LogicalName', ''),
        attributes=attributes,
        primary_name_attribute=definition.get('PrimaryNameAttribute'),
        primary_id_attribute=definition.get('PrimaryIdAttribute'),
        display_name=_label(definition.get('DisplayName')) or definition.get('LogicalName'),
        entity_set_name=definition.get('EntitySetName'),
    )

def parse_timezone_definitions(payload: Dict[str, Any]) -> List[TimezoneDefinition]:
    """Convert a timezonedefinitions response into TimezoneDefinition objects."""
    definitions = []
    for row in payload.get('value', []):
        if row.get('timezonecode') is None:
            continue
        definitions.append(TimezoneDefinition(
            code=int(row['timezonecode']),
            name=row.get('userinterfacename') or str(row['timezonecode']),
        ))
    return definitions
