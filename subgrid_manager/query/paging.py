"""
Paging rewrites for FetchXml queries.

Provides:
- add_paging_to_fetch_xml: injects page/count, consuming an existing top
- build_count_fetch_xml: derives the aggregate query that counts all
  records matched by a query
"""

import logging

from lxml import etree

from ..config.settings import AGGREGATE_TRUE, COUNT_ALIAS
from .analyzer import child_elements, to_int, parse_fetch_element
from .exceptions import ParseError

logger = logging.getLogger(__name__)

PAGING_ATTRIBUTES = ('top', 'count', 'page', 'paging-cookie')

def add_paging_to_fetch_xml(fetch_xml: str, page_size: int, current_page: int) -> str:
    """
    Return a copy of the query with paging attributes injected.

    When the query carries a non-zero top, that value becomes the page
    window (count) and top is removed. Otherwise count is set to page_size.
    In both cases page is set to current_page.

    Applying this to its own output does not reproduce the unpaged
    window: the consumed top is gone, so page_size wins on the second pass.

    Args:
        fetch_xml: FetchXml text
        page_size: Window size used when the query has no top
        current_page: 1-based page number

    Returns:
        Rewritten FetchXml text

    Raises:
        ParseError: For malformed input
    """
    fetch = parse_fetch_element(fetch_xml)
    top = to_int(fetch.get('top'))

    if top:
        del fetch.attrib['top']
        fetch.set('page', str(current_page))
        fetch.set('count', str(top))
    else:
        fetch.set('page', str(current_page))
        fetch.set('count', str(page_size))

    rewritten = etree.tostring(fetch, encoding='unicode')
    logger.debug(f"Paged FetchXml: page={fetch.get('page')} count={fetch.get('count')}")
    return rewritten

def build_count_fetch_xml(fetch_xml: str, primary_id_attribute: str) -> str:
    """
    Build an aggregate query counting every record the query matches.

    Paging attributes, attribute lists and orders are stripped at every
    level; filters and link-entities are kept so the count honours the
    same joins and conditions.

    Args:
        fetch_xml: FetchXml text
        primary_id_attribute: Primary key attribute of the root entity

    Returns:
        FetchXml text returning a single 'recordcount' aggregate

    Raises:
        ParseError: For malformed input or a query without <entity>
    """
    fetch = parse_fetch_element(fetch_xml)
    entity = next(iter(child_elements(fetch, 'entity')), None)
    if entity is None:
        raise ParseError("FetchXml has no <entity> element to count")

    for name in PAGING_ATTRIBUTES:
        if name in fetch.attrib:
            del fetch.attrib[name]
    fetch.set('aggregate', AGGREGATE_TRUE)

    for element in list(entity.iter('attribute', 'all-attributes', 'order')):
        element.getparent().remove(element)

    count_attribute = etree.Element('attribute')
    count_attribute.set('name', primary_id_attribute)
    count_attribute.set('alias', COUNT_ALIAS)
    count_attribute.set('aggregate', 'count')
    entity.insert(0, count_attribute)

    return etree.tostring(fetch, encoding='unicode')

def strip_paging_attributes(fetch_xml: str) -> str:
    """Return a copy of the query without top, count, page or paging-cookie."""
    fetch = parse_fetch_element(fetch_xml)
    for name in PAGING_ATTRIBUTES:
        if name in fetch.attrib:
            del fetch.attrib[name]
    return etree.tostring(fetch, encoding='unicode')
