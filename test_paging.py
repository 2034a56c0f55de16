import pytest
from lxml import etree

from subgrid_manager.query.analyzer import analyze
from subgrid_manager.query.exceptions import ParseError
from subgrid_manager.query.paging import (
    add_paging_to_fetch_xml,
    build_count_fetch_xml,
    strip_paging_attributes,
)

QUERY = """
<fetch top="5">
  <entity name="account">
    <attribute name="name" />
    <order attribute="name" />
    <filter>
      <condition attribute="statecode" operator="eq" value="0" />
    </filter>
    <link-entity name="contact" from="contactid" to="primarycontactid" alias="pc">
      <attribute name="fullname" />
      <order attribute="fullname" />
    </link-entity>
  </entity>
</fetch>
"""

def fetch_attributes(fetch_xml):
    return dict(etree.fromstring(fetch_xml.encode('utf-8')).attrib)

def test_top_becomes_page_window():
    """A non-zero top is consumed: count takes its value and top is removed."""
    paged = add_paging_to_fetch_xml(QUERY, 25, 1)
    assert fetch_attributes(paged) == {'page': '1', 'count': '5'}

def test_page_size_used_without_top():
    query = QUERY.replace(' top="5"', '')
    paged = add_paging_to_fetch_xml(query, 25, 3)
    assert fetch_attributes(paged) == {'page': '3', 'count': '25'}

def test_existing_count_is_replaced_by_page_size():
    query = QUERY.replace('top="5"', 'count="50" page="9"')
    assert fetch_attributes(add_paging_to_fetch_xml(query, 10, 2)) == {'page': '2', 'count': '10'}

def test_zero_top_is_not_a_window():
    query = QUERY.replace('top="5"', 'top="0"')
    attributes = fetch_attributes(add_paging_to_fetch_xml(query, 25, 1))
    assert attributes['count'] == '25'

def test_paging_is_not_idempotent():
    """Rewriting a rewritten query loses the consumed top."""
    once = add_paging_to_fetch_xml(QUERY, 25, 1)
    twice = add_paging_to_fetch_xml(once, 25, 1)
    assert fetch_attributes(once)['count'] == '5'
    assert fetch_attributes(twice)['count'] == '25'

def test_paging_keeps_query_body():
    """Only fetch attributes change; entity, filters and link-entities survive."""
    paged = analyze(add_paging_to_fetch_xml(QUERY, 25, 1))
    unpaged = analyze(QUERY)
    assert paged.entity_name == unpaged.entity_name
    assert paged.root_attributes == unpaged.root_attributes
    assert paged.link_entities == unpaged.link_entities
    assert paged.order == unpaged.order
    assert 'statecode' in add_paging_to_fetch_xml(QUERY, 25, 1)

def test_paging_malformed_raises():
    with pytest.raises(ParseError):
        add_paging_to_fetch_xml('<fetch><entity', 25, 1)

def test_count_query():
    """The count query aggregates the primary id and keeps joins and filters."""
    count_xml = build_count_fetch_xml(QUERY, 'accountid')
    fetch = etree.fromstring(count_xml.encode('utf-8'))

    assert dict(fetch.attrib) == {'aggregate': 'true'}
    attributes = list(fetch.iter('attribute'))
    assert len(attributes) == 1
    assert dict(attributes[0].attrib) == {
        'name': 'accountid', 'alias': 'recordcount', 'aggregate': 'count'
    }
    assert list(fetch.iter('order')) == []
    assert len(list(fetch.iter('link-entity'))) == 1
    assert len(list(fetch.iter('condition'))) == 1

def test_count_query_drops_all_attributes():
    query = '<fetch count="10" page="2"><entity name="account"><all-attributes/></entity></fetch>'
    fetch = etree.fromstring(build_count_fetch_xml(query, 'accountid').encode('utf-8'))
    assert list(fetch.iter('all-attributes')) == []
    assert 'count' not in fetch.attrib and 'page' not in fetch.attrib

def test_count_query_requires_entity():
    with pytest.raises(ParseError):
        build_count_fetch_xml('<fetch/>', 'accountid')

def test_strip_paging_attributes():
    query = '<fetch top="5" count="3" page="2" paging-cookie="x" distinct="true"><entity name="account"/></fetch>'
    assert fetch_attributes(strip_paging_attributes(query)) == {'distinct': 'true'}
