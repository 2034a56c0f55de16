"""
Configuration input parsing.

The grid accepts either raw FetchXml or a JSON object with the keys
fetchXml, pageSize, newButtonVisibility and deleteButtonVisibility.
Problems found while parsing are attached to the resulting GridConfig
rather than raised, so a degraded grid can still be shown with whatever
could be recovered.
"""

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..config.settings import CONFIG_INPUT_KEYS, MAX_PAGE_SIZE, MIN_PAGE_SIZE
from ..query.analyzer import get_fetch_xml_parser_error
from ..query.exceptions import ParseError, ValidationError
from .models import GridConfig

logger = logging.getLogger(__name__)

class GridInput(BaseModel):
    """JSON configuration input; unknown keys are tolerated and reported separately."""
    model_config = ConfigDict(extra='allow')

    fetch_xml: Optional[str] = Field(default=None, alias='fetchXml')
    page_size: Optional[Any] = Field(default=None, alias='pageSize')
    new_button_visibility: Optional[bool] = Field(default=None, alias='newButtonVisibility')
    delete_button_visibility: Optional[bool] = Field(default=None, alias='deleteButtonVisibility')

def get_page_size(value: Any = None) -> int:
    """
    Clamp a page size to [MIN_PAGE_SIZE, MAX_PAGE_SIZE].

    Accepts a number, a numeric string, or a mapping with a 'pageSize'
    key. Anything non-numeric yields MIN_PAGE_SIZE.
    """
    if isinstance(value, dict):
        value = value.get('pageSize')
    if value is None or isinstance(value, bool):
        return MIN_PAGE_SIZE
    try:
        page_size = int(float(value))
    except (TypeError, ValueError):
        return MIN_PAGE_SIZE
    if page_size < MIN_PAGE_SIZE:
        return MIN_PAGE_SIZE
    if page_size > MAX_PAGE_SIZE:
        return MAX_PAGE_SIZE
    return page_size

def is_json_valid(json_obj: dict) -> bool:
    """True when every key of the object is a recognized configuration key."""
    return all(key in CONFIG_INPUT_KEYS for key in json_obj)

def _load_json_object(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None

def _validate_input(json_obj: dict, config: GridConfig) -> GridInput:
    """Validate the JSON object, falling back to the individually usable keys."""
    try:
        return GridInput.model_validate(json_obj)
    except PydanticValidationError as e:
        logger.warning(f"Configuration JSON has invalid values: {e}")
        config.error = ValidationError(f"JSON is not valid: {e}")

    usable = {}
    for key, expected in (('fetchXml', str), ('newButtonVisibility', bool),
                          ('deleteButtonVisibility', bool)):
        if isinstance(json_obj.get(key), expected):
            usable[key] = json_obj[key]
    usable['pageSize'] = json_obj.get('pageSize')
    return GridInput.model_validate(usable)

def parse_raw_input(raw: Optional[str], defaults: Optional[GridConfig] = None) -> GridConfig:
    """
    Parse raw configuration input into a GridConfig.

    Args:
        raw: JSON configuration object or FetchXml text
        defaults: Values used for anything the input does not set

    Returns:
        GridConfig; `error` holds a ValidationError for disallowed or
        ill-typed JSON keys, or a ParseError for malformed FetchXml
    """
    defaults = defaults or GridConfig()
    config = GridConfig(
        fetch_xml=defaults.fetch_xml,
        page_size=get_page_size(defaults.page_size),
        new_button_visibility=defaults.new_button_visibility,
        delete_button_visibility=defaults.delete_button_visibility,
    )

    json_obj = _load_json_object(raw)
    if json_obj is not None:
        grid_input = _validate_input(json_obj, config)
        if not is_json_valid(json_obj):
            unknown = sorted(key for key in json_obj if key not in CONFIG_INPUT_KEYS)
            logger.warning(f"Configuration JSON has unknown keys: {unknown}")
            config.error = ValidationError('JSON is not valid')

        if grid_input.fetch_xml:
            config.fetch_xml = grid_input.fetch_xml
        if grid_input.page_size:
            config.page_size = get_page_size(grid_input.page_size)
        if grid_input.new_button_visibility is not None:
            config.new_button_visibility = grid_input.new_button_visibility
        if grid_input.delete_button_visibility is not None:
            config.delete_button_visibility = grid_input.delete_button_visibility
        return config

    fetch_xml = raw or defaults.fetch_xml
    parser_error = get_fetch_xml_parser_error(fetch_xml)
    if parser_error:
        logger.warning(f"Configuration FetchXml is invalid: {parser_error}")
        config.error = ParseError(parser_error)
    if fetch_xml:
        config.fetch_xml = fetch_xml
    return config
