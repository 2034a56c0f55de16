"""
Grid column derivation.

Columns follow the cell-keys the orchestrator produces, in the same order:
root attributes first (or aggregate aliases), then link-entity attributes.
Headers come from attribute metadata; widths split the allocated width
evenly with a lower bound. The column named by the query's first order
directive is marked as sorted.
"""

import asyncio
import logging
from dataclasses import replace
from typing import List, Optional

from ..config.settings import MIN_COLUMN_WIDTH
from ..dataverse.base import RecordService
from ..query.analyzer import analyze, require_alias_names
from ..query.paging import add_paging_to_fetch_xml, strip_paging_attributes
from .models import GridColumn
from .orchestrator import select_all_fields
from .projector import resolve_link_entity_cell_key
from .records import RecordView

logger = logging.getLogger(__name__)

def column_width(allocated_width: int, column_count: int) -> int:
    return max(MIN_COLUMN_WIDTH, allocated_width // max(1, column_count))

async def build_columns(fetch_xml: str, allocated_width: int,
                        service: RecordService) -> List[GridColumn]:
    """
    Derive the grid columns of a query.

    Args:
        fetch_xml: FetchXml query
        allocated_width: Width available to the grid, in pixels
        service: Record service providing metadata

    Returns:
        Columns in cell order

    Raises:
        ParseError, ValidationError, MetadataError, TransportError
    """
    document = analyze(fetch_xml)
    entity_name = document.entity_name
    aliases = require_alias_names(document)
    field_names = list(document.root_attribute_names)

    if (not field_names or document.all_attributes) and entity_name:
        # Select-all queries only reveal their fields through a record
        # A top would become the window, so paging attributes go first
        sample_fetch_xml = add_paging_to_fetch_xml(strip_paging_attributes(fetch_xml), 1, 1)
        sample = await service.retrieve_records(sample_fetch_xml)
        field_names = select_all_fields(RecordView(sample[0]), document) if sample else []

    root_metadata = await service.get_entity_metadata(entity_name, field_names)
    specs = []  # (key, name, aria_label, is_link_entity)

    if document.aggregate:
        for alias in aliases:
            specs.append((alias, alias, alias, False))
    else:
        for field_name in field_names:
            descriptor = root_metadata.attribute(field_name)
            specs.append((field_name, descriptor.display_name or field_name, field_name, False))

        distinct_names = list(document.link_entity_names)
        metadata_list = await asyncio.gather(*[
            service.get_entity_metadata(name, [
                attribute.name
                for link_entity in document.link_entities if link_entity.name == name
                for attribute in link_entity.attributes
            ])
            for name in distinct_names
        ])
        link_metadata = dict(zip(distinct_names, metadata_list))

        for link_entity in document.link_entities:
            metadata = link_metadata[link_entity.name]
            link_label = metadata.display_name or link_entity.name
            for attribute in link_entity.attributes:
                key = resolve_link_entity_cell_key(link_entity, attribute)
                label = metadata.attribute(attribute.name).display_name or attribute.name
                specs.append((key, f"{label} ({link_label})", attribute.name, True))

    width = column_width(allocated_width, len(specs))
    return [
        GridColumn(
            key=key,
            name=name,
            field_name=key,
            aria_label=aria_label,
            min_width=width,
            max_width=width,
            is_link_entity=is_link_entity,
        )
        for key, name, aria_label, is_link_entity in specs
    ]

def sort_columns(field_name: Optional[str],
                 aria_label: Optional[str],
                 descending: Optional[bool],
                 columns: Optional[List[GridColumn]]) -> List[GridColumn]:
    """
    Mark the column matching field_name or aria_label as sorted.

    When descending is None the matched column's direction is toggled.
    Every other column is marked unsorted.
    """
    sorted_columns = []
    for column in columns or []:
        matches = (
            (field_name is not None and column.field_name == field_name) or
            (aria_label is not None and column.aria_label == aria_label)
        )
        if matches:
            direction = descending if descending is not None else not column.is_sorted_descending
            column = replace(column, is_sorted=True, is_sorted_descending=direction)
        else:
            column = replace(column, is_sorted=False)
        sorted_columns.append(column)
    return sorted_columns

async def get_sorted_columns(fetch_xml: str, allocated_width: int,
                             service: RecordService) -> List[GridColumn]:
    """Columns of a query with the ordered column marked."""
    columns = await build_columns(fetch_xml, allocated_width, service)
    document = analyze(fetch_xml)
    order = document.order
    if not order:
        return columns
    if order.link_entity_position is None:
        return sort_columns(order.field_or_alias, order.field_or_alias, order.descending, columns)

    # Link-entity orders name the attribute or its alias; columns use cell-keys
    link_entity = document.link_entities[order.link_entity_position]
    attribute = next((
        attr for attr in link_entity.attributes
        if order.field_or_alias in (attr.name, attr.attribute_alias)
    ), None)
    if attribute is None:
        logger.debug(f"Order on '{order.field_or_alias}' of link-entity '{link_entity.name}' has no column")
        return sort_columns(None, None, order.descending, columns)
    key = resolve_link_entity_cell_key(link_entity, attribute)
    return sort_columns(key, None, order.descending, columns)
