"""
Dataverse Web API client.

Provides DataverseClient, the RecordService implementation backed by the
Dataverse (Dynamics 365) Web API, with:
- FetchXml record retrieval with all annotations requested
- Entity and attribute metadata lookup, cached per entity
- Timezone definitions lookup
- Total record counts through a derived aggregate query

Blocking HTTP calls run in worker threads so that independent requests
(e.g. metadata for several link-entities) can proceed concurrently.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..config.settings import (
    COUNT_ALIAS,
    DATAVERSE_API_VERSION,
    DATAVERSE_TOKEN,
    DATAVERSE_URL,
    INCLUDE_ANNOTATIONS_HEADER,
    REQUEST_TIMEOUT,
)
from ..query.analyzer import analyze, to_int
from ..query.exceptions import MetadataError, TransportError
from ..query.paging import build_count_fetch_xml, strip_paging_attributes
from .base import RecordService
from .metadata import (
    EntityMetadata,
    TimezoneDefinition,
    parse_entity_metadata,
    parse_timezone_definitions,
)

logger = logging.getLogger(__name__)

ENTITY_SELECT = 'LogicalName,PrimaryNameAttribute,PrimaryIdAttribute,EntitySetName,DisplayName'
ATTRIBUTE_SELECT = 'LogicalName,AttributeType,AttributeTypeName,DisplayName'

class DataverseClient(RecordService):
    """Client for the Dataverse Web API."""

    def __init__(self,
                 base_url: Optional[str] = None,
                 token: Optional[str] = None,
                 api_version: str = DATAVERSE_API_VERSION,
                 timeout: int = REQUEST_TIMEOUT):
        """Initialize the client.

        Args:
            base_url: Organization URL (defaults to DATAVERSE_URL)
            token: OAuth bearer token (defaults to DATAVERSE_TOKEN)
            api_version: Web API version, e.g. '9.2'
            timeout: Request timeout in seconds

        Raises:
            ValueError: If the organization URL or token is missing
        """
        self.base_url = (base_url or DATAVERSE_URL).rstrip('/')
        token = token or DATAVERSE_TOKEN
        if not self.base_url:
            raise ValueError("DATAVERSE_URL environment variable must be set")
        if not token:
            raise ValueError("DATAVERSE_TOKEN environment variable must be set")

        self.api_url = f"{self.base_url}/api/data/v{api_version}"
        self.timeout = timeout
        self._metadata_cache: Dict[str, EntityMetadata] = {}
        self._metadata_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
            "Prefer": INCLUDE_ANNOTATIONS_HEADER,
        })

        logger.info(f"Dataverse client initialized for {self.api_url}")

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Execute a GET against the Web API and decode the JSON body.

        Raises:
            TransportError: For connection failures, HTTP errors or bad JSON
        """
        url = f"{self.api_url}/{path}"
        logger.debug(f"GET {url} params={params}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            text = e.response.text if e.response is not None else None
            logger.error(f"Dataverse API error {status} for {path}: {text}")
            raise TransportError(f"Dataverse request failed: {e}",
                                 status_code=status, response_text=text) from e
        except requests.RequestException as e:
            logger.error(f"Dataverse request to {path} failed: {str(e)}")
            raise TransportError(f"Dataverse request failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"Dataverse returned invalid JSON for {path}") from e

    def _load_entity_metadata(self, entity_name: str) -> EntityMetadata:
        """Fetch and cache full metadata for one entity (blocking).

        Concurrent callers for the same entity wait on one request.
        """
        with self._locks_guard:
            lock = self._metadata_locks.setdefault(entity_name, threading.Lock())
        with lock:
            return self._fetch_entity_metadata(entity_name)

    def _fetch_entity_metadata(self, entity_name: str) -> EntityMetadata:
        if entity_name in self._metadata_cache:
            logger.debug(f"Using cached metadata for {entity_name}")
            return self._metadata_cache[entity_name]

        definition_path = f"EntityDefinitions(LogicalName='{entity_name}')"
        try:
            definition = self._get(definition_path, params={
                '$select': ENTITY_SELECT,
                '$expand': f"Attributes($select={ATTRIBUTE_SELECT})",
            })
            integer_payload = self._get(
                f"{definition_path}/Attributes/Microsoft.Dynamics.CRM.IntegerAttributeMetadata",
                params={'$select': 'LogicalName,Format'},
            )
        except TransportError as e:
            if e.status_code == 404:
                raise MetadataError(f"Unknown entity '{entity_name}'",
                                    entity_name=entity_name) from e
            raise

        integer_formats = {
            row['LogicalName']: row.get('Format')
            for row in integer_payload.get('value', [])
            if row.get('LogicalName')
        }
        metadata = parse_entity_metadata(definition, integer_formats)
        self._metadata_cache[entity_name] = metadata
        logger.info(f"Loaded metadata for {entity_name} ({len(metadata.attributes)} attributes)")
        return metadata

    async def get_entity_metadata(self, entity_name: str,
                                  field_names: Sequence[str]) -> EntityMetadata:
        metadata = await asyncio.to_thread(self._load_entity_metadata, entity_name)
        return metadata.restricted_to(field_names)

    async def get_entity_display_name(self, entity_name: str) -> str:
        metadata = await asyncio.to_thread(self._load_entity_metadata, entity_name)
        return metadata.display_name or entity_name

    async def retrieve_records(self, fetch_xml: str) -> List[Dict[str, Any]]:
        entity_name = analyze(fetch_xml).entity_name
        metadata = await asyncio.to_thread(self._load_entity_metadata, entity_name)
        if not metadata.entity_set_name:
            raise MetadataError(f"Entity '{entity_name}' has no entity set",
                                entity_name=entity_name)

        payload = await asyncio.to_thread(
            self._get, metadata.entity_set_name, {'fetchXml': fetch_xml}
        )
        records = payload.get('value', [])
        logger.info(f"Retrieved {len(records)} {entity_name} records")
        return records

    async def get_timezone_definitions(self) -> List[TimezoneDefinition]:
        payload = await asyncio.to_thread(
            self._get, 'timezonedefinitions',
            {'$select': 'timezonecode,userinterfacename'},
        )
        return parse_timezone_definitions(payload)

    async def get_records_count(self, fetch_xml: str) -> int:
        """Total records a query matches, capped at its top when it has one."""
        document = analyze(fetch_xml)
        if document.aggregate:
            # Aggregate queries count their groups
            total = len(await self.retrieve_records(strip_paging_attributes(fetch_xml)))
        else:
            metadata = await asyncio.to_thread(self._load_entity_metadata, document.entity_name)
            count_fetch_xml = build_count_fetch_xml(
                fetch_xml, metadata.primary_id_attribute or f"{document.entity_name}id"
            )
            rows = await self.retrieve_records(count_fetch_xml)
            total = int(rows[0].get(COUNT_ALIAS) or 0) if rows else 0

        top = to_int(document.top)
        if top:
            total = min(total, top)
        return total

    def get_record_url(self, entity_name: str, record_id: str) -> Optional[str]:
        if not record_id:
            return None
        return f"{self.base_url}/main.aspx?etn={entity_name}&id={record_id}&pagetype=entityrecord"

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
