import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import pytest

from subgrid_manager.dataverse.base import RecordService
from subgrid_manager.dataverse.metadata import (
    AttributeDescriptor,
    AttributeType,
    EntityMetadata,
    TimezoneDefinition,
)
from subgrid_manager.query.exceptions import MetadataError

# Setup logging
logging.basicConfig(level=logging.DEBUG)

FORMATTED = '@OData.Community.Display.V1.FormattedValue'
LOOKUP_NAME = '@Microsoft.Dynamics.CRM.lookuplogicalname'

def make_metadata(entity_name: str,
                  attributes: Dict[str, Any],
                  primary_name: Optional[str] = None,
                  display_name: Optional[str] = None) -> EntityMetadata:
    """
    Build EntityMetadata from {field: type} or {field: (type, format, label)}.
    """
    descriptors = {}
    for name, definition in attributes.items():
        if isinstance(definition, tuple):
            attribute_type, format, label = (definition + (None, None))[:3]
        else:
            attribute_type, format, label = definition, None, None
        descriptors[name] = AttributeDescriptor(
            field_name=name,
            attribute_type=attribute_type,
            format=format,
            display_name=label or name.title(),
        )
    return EntityMetadata(
        entity_name=entity_name,
        attributes=descriptors,
        primary_name_attribute=primary_name,
        primary_id_attribute=f"{entity_name}id",
        display_name=display_name or entity_name.title(),
        entity_set_name=f"{entity_name}s",
    )

class FakeRecordService(RecordService):
    """In-memory record service that records every call it receives."""

    def __init__(self,
                 records: Optional[List[Dict[str, Any]]] = None,
                 metadata: Optional[Dict[str, EntityMetadata]] = None,
                 timezones: Sequence[TimezoneDefinition] = (),
                 total_count: Optional[int] = None):
        self.records = records or []
        self.metadata = metadata or {}
        self.timezones = list(timezones)
        self.total_count = total_count
        self.retrieve_error: Optional[Exception] = None
        self.retrieve_delays: List[float] = []
        self.metadata_delay = 0.0

        self.retrieve_calls: List[str] = []
        self.metadata_calls: List[tuple] = []
        self.count_calls: List[str] = []
        self.timezone_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def retrieve_records(self, fetch_xml: str) -> List[Dict[str, Any]]:
        self.retrieve_calls.append(fetch_xml)
        if self.retrieve_delays:
            await asyncio.sleep(self.retrieve_delays.pop(0))
        if self.retrieve_error:
            raise self.retrieve_error
        return [dict(record) for record in self.records]

    async def get_entity_metadata(self, entity_name: str,
                                  field_names: Sequence[str]) -> EntityMetadata:
        self.metadata_calls.append((entity_name, tuple(field_names)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.metadata_delay:
                await asyncio.sleep(self.metadata_delay)
            if entity_name not in self.metadata:
                raise MetadataError(f"Unknown entity '{entity_name}'", entity_name=entity_name)
            return self.metadata[entity_name].restricted_to(field_names)
        finally:
            self.in_flight -= 1

    async def get_timezone_definitions(self) -> List[TimezoneDefinition]:
        self.timezone_calls += 1
        return self.timezones

    async def get_records_count(self, fetch_xml: str) -> int:
        self.count_calls.append(fetch_xml)
        if self.total_count is not None:
            return self.total_count
        return len(self.records)

    async def get_entity_display_name(self, entity_name: str) -> str:
        if entity_name not in self.metadata:
            raise MetadataError(f"Unknown entity '{entity_name}'", entity_name=entity_name)
        return self.metadata[entity_name].display_name

@pytest.fixture
def account_metadata():
    """Account metadata with the attribute types used across the tests."""
    return make_metadata('account', {
        'name': AttributeType.OTHER,
        'accountnumber': AttributeType.OTHER,
        'revenue': AttributeType.MONEY,
        'industrycode': AttributeType.PICKLIST,
        'primarycontactid': AttributeType.LOOKUP,
        'ownerid': AttributeType.OWNER,
        'accountid': AttributeType.OTHER,
        'donotemail': AttributeType.TWO_OPTIONS,
        'createdon': AttributeType.DATE_TIME,
        'numberofemployees': AttributeType.WHOLE_NUMBER,
        'timezoneruleversionnumber': (AttributeType.WHOLE_NUMBER, 'TimeZone'),
        'followupduration': (AttributeType.WHOLE_NUMBER, 'Duration'),
    }, primary_name='name', display_name='Account')

@pytest.fixture
def contact_metadata():
    return make_metadata('contact', {
        'fullname': (AttributeType.OTHER, None, 'Full Name'),
        'emailaddress1': (AttributeType.OTHER, None, 'Email'),
        'parentcustomerid': AttributeType.CUSTOMER,
        'donotphone': AttributeType.TWO_OPTIONS,
    }, primary_name='fullname', display_name='Contact')

@pytest.fixture
def systemuser_metadata():
    return make_metadata('systemuser', {
        'fullname': (AttributeType.OTHER, None, 'User Name'),
    }, primary_name='fullname', display_name='User')

@pytest.fixture
def service(account_metadata, contact_metadata, systemuser_metadata):
    """Fake service knowing account, contact and systemuser."""
    return FakeRecordService(metadata={
        'account': account_metadata,
        'contact': contact_metadata,
        'systemuser': systemuser_metadata,
    })
