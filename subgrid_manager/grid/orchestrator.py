"""
Grid orchestration: one query in, one projected page out.

GridOrchestrator sequences the steps of a fetch cycle:
1. Determine the window (explicit cap or page size) and rewrite for paging
2. Retrieve the page of records and the total record count
3. Resolve root metadata and, concurrently, one metadata set per
   distinct link-entity name
4. Resolve timezone definitions once for the whole cycle
5. Project every record and compute paging bookkeeping

Any MetadataError or TransportError aborts the cycle: no partial page is
returned.
"""

import asyncio
import logging
from typing import Dict, List, Sequence

from ..dataverse.base import RecordService
from ..dataverse.metadata import EntityMetadata, TimezoneDefinition
from ..query.analyzer import analyze, require_alias_names
from ..query.models import LinkEntity, QueryDocument
from ..query.paging import add_paging_to_fetch_xml
from .models import GridPage, ProjectedItem
from .projector import (
    ExecutionContext,
    ProjectionContext,
    RecordProjector,
    resolve_link_entity_cell_key,
)
from .records import RecordView

logger = logging.getLogger(__name__)

def select_all_fields(record: RecordView, document: QueryDocument) -> List[str]:
    """
    Field list for a query without declared attributes.

    Follows the record's own key order. Annotation keys are skipped,
    '_{field}_value' keys become '{field}', and the entity's id key is
    dropped. So are keys that belong to the query's link-entities or
    carry a root alias, whether or not they contain a dot.
    """
    id_key = f"{document.entity_name}id"
    aliased = {attr.alias for attr in document.root_attributes if attr.alias}
    for link_entity in document.link_entities:
        for attribute in link_entity.attributes:
            aliased.add(resolve_link_entity_cell_key(link_entity, attribute))

    fields: List[str] = []
    for key in record.keys():
        if '@' in key or '.' in key or key == id_key or key in aliased:
            continue
        if key.startswith('_') and key.endswith('_value'):
            key = key[1:-len('_value')]
        if key and key not in fields:
            fields.append(key)
    return fields

def compute_page_bounds(total_count: int, item_count: int,
                        page_size: int, current_page: int) -> Dict[str, object]:
    """
    Paging bookkeeping for a page.

    Returns:
        Dictionary with first_item_index, last_item_index,
        next_page_available and previous_page_available
    """
    if item_count:
        first_item_index = (current_page - 1) * page_size + 1
        last_item_index = first_item_index + item_count - 1
    else:
        first_item_index = last_item_index = 0
    return {
        'first_item_index': first_item_index,
        'last_item_index': last_item_index,
        'next_page_available': total_count > current_page * page_size,
        'previous_page_available': current_page > 1,
    }

class GridOrchestrator:
    """
    Runs fetch cycles against a record service.
    """

    def __init__(self, service: RecordService):
        """Initialize with the record service to query."""
        self.service = service
        self.projector = RecordProjector(service)
        self.logger = logging.getLogger(__name__)

    async def get_items(self, fetch_xml: str, page_size: int, current_page: int) -> GridPage:
        """
        Fetch and project one page of records.

        Args:
            fetch_xml: FetchXml query as configured
            page_size: Requested page size, overridden by an explicit cap
            current_page: 1-based page number

        Returns:
            GridPage with the projected items and paging bookkeeping

        Raises:
            ParseError: For malformed FetchXml
            ValidationError: For aggregate attributes without an alias
            MetadataError: For unknown entities or fields
            TransportError: For failed remote calls
        """
        document = analyze(fetch_xml)
        window = document.explicit_cap or page_size
        paged_fetch_xml = add_paging_to_fetch_xml(fetch_xml, window, current_page)
        aliases = require_alias_names(document)
        entity_name = document.entity_name

        self.logger.info(
            f"Fetching page {current_page} of '{entity_name}' (window {window})"
        )

        records = [RecordView(raw) for raw in await self.service.retrieve_records(paged_fetch_xml)]
        total_count = await self.service.get_records_count(fetch_xml)

        field_names = list(document.root_attribute_names)
        if (not field_names or document.all_attributes) and entity_name:
            field_names = select_all_fields(records[0], document) if records else []
            self.logger.debug(f"No declared attributes, selecting {field_names}")

        root_metadata = await self.service.get_entity_metadata(entity_name, field_names)

        link_entities = () if document.aggregate else document.link_entities
        link_metadata = await self._resolve_link_entity_metadata(link_entities)
        timezone_definitions = await self.service.get_timezone_definitions()

        items = [
            self._project_record(
                record, row, document, field_names, aliases, root_metadata,
                link_entities, link_metadata, timezone_definitions,
            )
            for row, record in enumerate(records)
        ]

        bounds = compute_page_bounds(total_count, len(items), window, current_page)
        self.logger.info(
            f"Projected {len(items)} items ({bounds['first_item_index']}-"
            f"{bounds['last_item_index']} of {total_count})"
        )
        return GridPage(
            items=items,
            total_count=total_count,
            page_size=window,
            current_page=current_page,
            fetch_xml=paged_fetch_xml,
            **bounds,
        )

    async def _resolve_link_entity_metadata(
            self, link_entities: Sequence[LinkEntity]) -> Dict[str, EntityMetadata]:
        """Metadata per distinct link-entity name, fetched concurrently."""
        fields_by_name: Dict[str, List[str]] = {}
        for link_entity in link_entities:
            names = fields_by_name.setdefault(link_entity.name, [])
            for attribute in link_entity.attributes:
                if attribute.name not in names:
                    names.append(attribute.name)

        if not fields_by_name:
            return {}

        entity_names = list(fields_by_name)
        results = await asyncio.gather(*[
            self.service.get_entity_metadata(name, fields_by_name[name])
            for name in entity_names
        ])
        return dict(zip(entity_names, results))

    def _project_record(self,
                        record: RecordView,
                        row: int,
                        document: QueryDocument,
                        field_names: Sequence[str],
                        aliases: Sequence[str],
                        root_metadata: EntityMetadata,
                        link_entities: Sequence[LinkEntity],
                        link_metadata: Dict[str, EntityMetadata],
                        timezone_definitions: Sequence[TimezoneDefinition]) -> ProjectedItem:
        id_attribute = root_metadata.primary_id_attribute or f"{document.entity_name}id"
        item = ProjectedItem(id=record.record_id(id_attribute) or str(row))

        for index, field_name in enumerate(field_names):
            descriptor = root_metadata.attribute(field_name)
            if document.aggregate:
                context = ProjectionContext(
                    mode=ExecutionContext.AGGREGATE,
                    entity_metadata=root_metadata,
                    attribute_type=descriptor.attribute_type,
                    field_name=field_name,
                    cell_key=aliases[index],
                    aggregate_alias=aliases[index],
                    timezone_definitions=timezone_definitions,
                )
            else:
                context = ProjectionContext(
                    mode=ExecutionContext.ROOT,
                    entity_metadata=root_metadata,
                    attribute_type=descriptor.attribute_type,
                    field_name=field_name,
                    cell_key=field_name,
                    timezone_definitions=timezone_definitions,
                )
            self._add_cells(item, self.projector.project(record, context))

        for link_entity in link_entities:
            metadata = link_metadata[link_entity.name]
            for attribute in link_entity.attributes:
                context = ProjectionContext(
                    mode=ExecutionContext.LINK_ENTITY,
                    entity_metadata=metadata,
                    attribute_type=metadata.attribute(attribute.name).attribute_type,
                    field_name=attribute.name,
                    cell_key=resolve_link_entity_cell_key(link_entity, attribute),
                    timezone_definitions=timezone_definitions,
                )
                self._add_cells(item, self.projector.project(record, context))

        return item

    def _add_cells(self, item: ProjectedItem, cells) -> None:
        for key, cell in cells.items():
            if key in item.cells or key == 'id':
                self.logger.warning(f"Duplicate cell-key '{key}' in record {item.id}; keeping the first")
                continue
            item.cells[key] = cell
