"""
Display formatting for whole-number attributes.

Whole numbers carry a metadata Format that changes how they read:
- Duration: minutes rendered as minutes, hours or days
- TimeZone: timezone code rendered as the timezone's name
- Language / Locale / None: the platform's formatted value, else the number
"""

from typing import Any, Mapping, Optional, Sequence

from ..config.settings import FORMATTED_VALUE_SUFFIX
from .metadata import TimezoneDefinition

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR

def _plural(value: float, unit: str) -> str:
    text = f"{round(value, 2):.2f}".rstrip('0').rstrip('.')
    return f"{text} {unit}" if text == '1' else f"{text} {unit}s"

def format_duration(minutes: float) -> str:
    """Render a duration in minutes the way the platform does (e.g. '1.5 hours')."""
    if abs(minutes) < MINUTES_PER_HOUR:
        return _plural(minutes, 'minute')
    if abs(minutes) < MINUTES_PER_DAY:
        return _plural(minutes / MINUTES_PER_HOUR, 'hour')
    return _plural(minutes / MINUTES_PER_DAY, 'day')

def format_timezone(code: Any, timezone_definitions: Sequence[TimezoneDefinition]) -> str:
    """Name of the timezone with the given code, or the code itself if unknown."""
    try:
        numeric = int(code)
    except (TypeError, ValueError):
        return str(code)
    for definition in timezone_definitions:
        if definition.code == numeric:
            return definition.name
    return str(code)

def get_whole_number_display(format: Optional[str],
                             record: Mapping[str, Any],
                             field_name: str,
                             timezone_definitions: Sequence[TimezoneDefinition]) -> str:
    """
    Display text for a whole-number field.

    Args:
        format: Attribute metadata Format (case-insensitive)
        record: Raw record as returned by the Web API
        field_name: Key of the value in the record
        timezone_definitions: Definitions used for TimeZone formats

    Returns:
        Display text, '' when the record holds no value
    """
    value = record.get(field_name)
    if value is None:
        return ''

    kind = (format or 'none').lower()
    if kind == 'duration':
        try:
            return format_duration(float(value))
        except (TypeError, ValueError):
            return str(value)
    if kind == 'timezone':
        return format_timezone(value, timezone_definitions)

    formatted = record.get(f"{field_name}@{FORMATTED_VALUE_SUFFIX}")
    return str(formatted) if formatted is not None else str(value)
