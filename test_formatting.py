import pytest

from conftest import FORMATTED
from subgrid_manager.dataverse.formatting import (
    format_duration,
    format_timezone,
    get_whole_number_display,
)
from subgrid_manager.dataverse.metadata import (
    AttributeType,
    TimezoneDefinition,
    parse_entity_metadata,
    parse_timezone_definitions,
)
from subgrid_manager.query.exceptions import MetadataError

TIMEZONES = [TimezoneDefinition(code=85, name='(GMT+00:00) London')]

@pytest.mark.parametrize('minutes,expected', [
    (0, '0 minutes'),
    (1, '1 minute'),
    (30, '30 minutes'),
    (60, '1 hour'),
    (90, '1.5 hours'),
    (100, '1.67 hours'),
    (1440, '1 day'),
    (2880, '2 days'),
    (2160, '1.5 days'),
])
def test_format_duration(minutes, expected):
    assert format_duration(minutes) == expected

def test_format_timezone():
    assert format_timezone(85, TIMEZONES) == '(GMT+00:00) London'
    assert format_timezone('85', TIMEZONES) == '(GMT+00:00) London'
    assert format_timezone(4, TIMEZONES) == '4'
    assert format_timezone('n/a', TIMEZONES) == 'n/a'

@pytest.mark.parametrize('format,record,expected', [
    ('Duration', {'f': 120}, '2 hours'),
    ('duration', {'f': 'soon'}, 'soon'),
    ('TimeZone', {'f': 85}, '(GMT+00:00) London'),
    ('Language', {'f': 1033, f'f{FORMATTED}': 'English'}, 'English'),
    ('None', {'f': 1200, f'f{FORMATTED}': '1,200'}, '1,200'),
    (None, {'f': 7}, '7'),
    ('Duration', {}, ''),
    (None, {'f': None}, ''),
])
def test_whole_number_display(format, record, expected):
    assert get_whole_number_display(format, record, 'f', TIMEZONES) == expected

def test_parse_entity_metadata():
    definition = {
        'LogicalName': 'contact',
        'PrimaryNameAttribute': 'fullname',
        'PrimaryIdAttribute': 'contactid',
        'EntitySetName': 'contacts',
        'DisplayName': {'UserLocalizedLabel': {'Label': 'Contact'}},
        'Attributes': [
            {'LogicalName': 'fullname', 'AttributeType': 'String'},
            {'LogicalName': 'parentcustomerid', 'AttributeType': 'Customer'},
            {'LogicalName': 'ownerid', 'AttributeType': 'Owner'},
            {'LogicalName': 'birthdate', 'AttributeType': 'DateTime'},
            {'LogicalName': 'donotphone', 'AttributeType': 'Boolean'},
            {'AttributeType': 'String'},
        ],
    }
    metadata = parse_entity_metadata(definition)

    assert metadata.display_name == 'Contact'
    assert metadata.entity_set_name == 'contacts'
    assert list(metadata.attributes) == ['fullname', 'parentcustomerid', 'ownerid', 'birthdate', 'donotphone']
    assert metadata.attribute('parentcustomerid').attribute_type is AttributeType.CUSTOMER
    assert metadata.attribute('ownerid').attribute_type is AttributeType.OWNER
    assert metadata.attribute('birthdate').attribute_type is AttributeType.DATE_TIME
    assert metadata.attribute('donotphone').attribute_type is AttributeType.TWO_OPTIONS
    assert metadata.attribute('fullname').display_name == 'fullname'

def test_restricted_metadata_rejects_unknown_fields():
    metadata = parse_entity_metadata({'LogicalName': 'contact', 'Attributes': [
        {'LogicalName': 'fullname', 'AttributeType': 'String'},
    ]})
    assert list(metadata.restricted_to(['fullname']).attributes) == ['fullname']
    with pytest.raises(MetadataError):
        metadata.restricted_to(['fullname', 'nickname'])

def test_parse_timezone_definitions():
    payload = {'value': [
        {'timezonecode': 85, 'userinterfacename': '(GMT+00:00) London'},
        {'timezonecode': None, 'userinterfacename': 'broken'},
        {'timezonecode': '4'},
    ]}
    definitions = parse_timezone_definitions(payload)
    assert definitions == [
        TimezoneDefinition(code=85, name='(GMT+00:00) London'),
        TimezoneDefinition(code=4, name='4'),
    ]
