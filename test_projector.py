import pytest

from conftest import FORMATTED, LOOKUP_NAME
from subgrid_manager.dataverse.metadata import AttributeType, TimezoneDefinition
from subgrid_manager.grid.models import LookupTarget
from subgrid_manager.grid.projector import (
    ExecutionContext,
    ProjectionContext,
    RecordProjector,
    resolve_link_entity_cell_key,
)
from subgrid_manager.grid.records import RecordView
from subgrid_manager.query.exceptions import TransportError, ValidationError
from subgrid_manager.query.models import LinkEntity, LinkEntityAttribute

@pytest.fixture
def projector(service):
    return RecordProjector(service)

def root_context(metadata, field_name, **kwargs):
    return ProjectionContext(
        mode=ExecutionContext.ROOT,
        entity_metadata=metadata,
        attribute_type=metadata.attribute(field_name).attribute_type,
        field_name=field_name,
        cell_key=field_name,
        **kwargs,
    )

def link_context(metadata, field_name, cell_key):
    return ProjectionContext(
        mode=ExecutionContext.LINK_ENTITY,
        entity_metadata=metadata,
        attribute_type=metadata.attribute(field_name).attribute_type,
        field_name=field_name,
        cell_key=cell_key,
    )

def test_money_uses_formatted_value(projector, account_metadata):
    record = RecordView({'revenue': 1000, f'revenue{FORMATTED}': '$1,000.00'})
    cell = projector.project(record, root_context(account_metadata, 'revenue'))['revenue']

    assert cell.display_name == '$1,000.00'
    assert cell.linkable is False
    assert cell.attribute_type is AttributeType.MONEY
    assert cell.entity_name == 'account'
    assert cell.is_link_entity is False

def test_formatted_types_without_annotation_are_unresolved(projector, account_metadata):
    """A missing formatted value yields None, not the raw value."""
    record = RecordView({'industrycode': 3, 'donotemail': False})
    assert projector.project(record, root_context(account_metadata, 'industrycode'))['industrycode'].display_name is None
    assert projector.project(record, root_context(account_metadata, 'donotemail'))['donotemail'].display_name is None

def test_date_time_uses_formatted_value(projector, account_metadata):
    record = RecordView({'createdon': '2024-01-05T10:00:00Z', f'createdon{FORMATTED}': '1/5/2024 10:00 AM'})
    cell = projector.project(record, root_context(account_metadata, 'createdon'))['createdon']
    assert cell.display_name == '1/5/2024 10:00 AM'

def test_root_lookup(projector, account_metadata):
    """Root lookups read the '_{field}_value' side keys and link to the target."""
    record = RecordView({
        '_primarycontactid_value': 'c-1',
        f'_primarycontactid_value{FORMATTED}': 'Jim Glynn',
        f'_primarycontactid_value{LOOKUP_NAME}': 'contact',
    })
    cell = projector.project(record, root_context(account_metadata, 'primarycontactid'))['primarycontactid']

    assert cell.display_name == 'Jim Glynn'
    assert cell.linkable is True
    assert cell.target == LookupTarget(entity_name='contact', record_id='c-1')

def test_root_lookup_without_side_key(projector, account_metadata):
    record = RecordView({'name': 'Contoso'})
    cell = projector.project(record, root_context(account_metadata, 'ownerid'))['ownerid']
    assert cell.display_name is None
    assert cell.linkable is True
    assert cell.target is None

def test_link_entity_lookup(projector, contact_metadata):
    """Link-entity references use the aliased key itself, without a '_value' wrapper."""
    record = RecordView({
        'pc.parentcustomerid': 'a-9',
        f'pc.parentcustomerid{FORMATTED}': 'Fabrikam',
        f'pc.parentcustomerid{LOOKUP_NAME}': 'account',
    })
    context = link_context(contact_metadata, 'parentcustomerid', 'pc.parentcustomerid')
    cell = projector.project(record, context)['pc.parentcustomerid']

    assert cell.display_name == 'Fabrikam'
    assert cell.linkable is True
    assert cell.is_link_entity is True
    assert cell.entity_name == 'contact'
    assert cell.field_name == 'parentcustomerid'
    assert cell.target == LookupTarget(entity_name='account', record_id='a-9')

def test_link_entity_lookup_without_side_key(projector, contact_metadata):
    record = RecordView({'pc.parentcustomerid': 'a-9'})
    context = link_context(contact_metadata, 'parentcustomerid', 'pc.parentcustomerid')
    cell = projector.project(record, context)['pc.parentcustomerid']
    assert cell.display_name is None
    assert cell.linkable is True

def test_link_entity_plain_value(projector, contact_metadata):
    context = link_context(contact_metadata, 'fullname', 'pc.fullname')
    present = projector.project(RecordView({'pc.fullname': 'Jim Glynn'}), context)['pc.fullname']
    missing = projector.project(RecordView({}), context)['pc.fullname']

    assert present.display_name == 'Jim Glynn'
    assert present.linkable is False
    assert missing.display_name == ''

def test_link_entity_two_options_is_formatted(projector, contact_metadata):
    record = RecordView({'pc.donotphone': True, f'pc.donotphone{FORMATTED}': 'Do Not Allow'})
    context = link_context(contact_metadata, 'donotphone', 'pc.donotphone')
    cell = projector.project(record, context)['pc.donotphone']
    assert cell.display_name == 'Do Not Allow'
    assert cell.linkable is False

def test_aggregate_values(projector, account_metadata):
    """Aggregate cells show the raw value at the alias."""
    record = RecordView({'cnt': 42, 'total': 1500.5})
    count_context = ProjectionContext(
        mode=ExecutionContext.AGGREGATE,
        entity_metadata=account_metadata,
        attribute_type=AttributeType.OTHER,
        field_name='accountid',
        cell_key='cnt',
        aggregate_alias='cnt',
    )
    cell = projector.project(record, count_context)['cnt']

    assert cell.display_name == '42'
    assert cell.aggregate is True
    assert cell.linkable is False
    assert cell.field_name == 'cnt'

    missing = ProjectionContext(
        mode=ExecutionContext.AGGREGATE,
        entity_metadata=account_metadata,
        attribute_type=AttributeType.MONEY,
        field_name='revenue',
        cell_key='avg',
        aggregate_alias='avg',
    )
    assert projector.project(record, missing)['avg'].display_name is None

def test_aggregate_without_alias_raises(projector, account_metadata):
    context = ProjectionContext(
        mode=ExecutionContext.AGGREGATE,
        entity_metadata=account_metadata,
        attribute_type=AttributeType.OTHER,
        field_name='accountid',
        cell_key='accountid',
    )
    with pytest.raises(ValidationError):
        projector.project(RecordView({'accountid': 1}), context)

def test_whole_number_duration(projector, account_metadata):
    record = RecordView({'followupduration': 90})
    cell = projector.project(record, root_context(account_metadata, 'followupduration'))['followupduration']
    assert cell.display_name == '1.5 hours'
    assert cell.linkable is False

def test_whole_number_timezone(projector, account_metadata):
    timezones = (TimezoneDefinition(code=85, name='(GMT+00:00) Dublin, Edinburgh, Lisbon, London'),)
    record = RecordView({'timezoneruleversionnumber': 85})
    context = root_context(account_metadata, 'timezoneruleversionnumber', timezone_definitions=timezones)
    cell = projector.project(record, context)['timezoneruleversionnumber']
    assert cell.display_name == '(GMT+00:00) Dublin, Edinburgh, Lisbon, London'

def test_whole_number_without_format(projector, account_metadata):
    record = RecordView({'numberofemployees': 1200, f'numberofemployees{FORMATTED}': '1,200'})
    cell = projector.project(record, root_context(account_metadata, 'numberofemployees'))['numberofemployees']
    assert cell.display_name == '1,200'

def test_primary_name_links_to_record(projector, account_metadata):
    record = RecordView({'accountid': 'a-1', 'name': 'Contoso'})
    cell = projector.project(record, root_context(account_metadata, 'name'))['name']

    assert cell.display_name == 'Contoso'
    assert cell.linkable is True
    assert cell.target == LookupTarget(entity_name='account', record_id='a-1')

def test_plain_root_value(projector, account_metadata):
    context = root_context(account_metadata, 'accountnumber')
    assert projector.project(RecordView({'accountnumber': 'AB-1'}), context)['accountnumber'].display_name == 'AB-1'
    assert projector.project(RecordView({}), context)['accountnumber'].display_name == ''

def test_record_view_rejects_non_mapping():
    with pytest.raises(TransportError):
        RecordView(['not', 'a', 'record'])
    with pytest.raises(TransportError):
        RecordView({1: 'x'})

@pytest.mark.parametrize('link_alias,attribute_alias,expected', [
    ('pc', 'email', 'email'),
    ('pc', None, 'pc.emailaddress1'),
    (None, None, 'contact3.emailaddress1'),
])
def test_link_entity_cell_key(link_alias, attribute_alias, expected):
    attribute = LinkEntityAttribute(name='emailaddress1', link_entity_alias=link_alias,
                                    attribute_alias=attribute_alias)
    link_entity = LinkEntity(name='contact', alias=link_alias, position=2, attributes=(attribute,))
    assert resolve_link_entity_cell_key(link_entity, attribute) == expected
