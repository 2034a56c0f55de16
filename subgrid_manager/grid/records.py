"""
Typed access to raw Web API records.

Raw records are flat mappings whose keys follow platform conventions:
- '{key}' holds the raw value
- '{key}@OData.Community.Display.V1.FormattedValue' holds display text
- '_{field}_value' holds the id a root lookup points at
- '{key}@Microsoft.Dynamics.CRM.lookuplogicalname' names the target entity

RecordView validates a record once when it is wrapped and exposes these
values through explicit accessors.
"""

from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from ..config.settings import FORMATTED_VALUE_SUFFIX, LOOKUP_LOGICAL_NAME_SUFFIX
from ..query.exceptions import TransportError
from .models import LookupTarget

class RecordView:
    """Read-only accessor over one raw record."""

    def __init__(self, record: Mapping[str, Any]):
        if not isinstance(record, Mapping):
            raise TransportError(f"Record service returned a non-mapping record: {type(record).__name__}")
        bad_keys = [key for key in record if not isinstance(key, str)]
        if bad_keys:
            raise TransportError(f"Record service returned non-string keys: {bad_keys!r}")
        self._record = MappingProxyType(dict(record))

    @property
    def record(self) -> Mapping[str, Any]:
        return self._record

    def keys(self) -> List[str]:
        """Record keys in the order the service returned them."""
        return list(self._record.keys())

    def has(self, key: str) -> bool:
        return key in self._record

    def raw_value(self, key: str) -> Any:
        return self._record.get(key)

    def formatted_value(self, key: str) -> Optional[str]:
        return self._record.get(f"{key}@{FORMATTED_VALUE_SUFFIX}")

    @staticmethod
    def lookup_value_key(field_name: str, is_link_entity: bool) -> str:
        """Key holding a lookup's id: aliased keys are used as-is for link-entities."""
        return field_name if is_link_entity else f"_{field_name}_value"

    def lookup_formatted_value(self, field_name: str, is_link_entity: bool = False) -> Optional[str]:
        return self.formatted_value(self.lookup_value_key(field_name, is_link_entity))

    def lookup_target(self, field_name: str, is_link_entity: bool = False) -> Optional[LookupTarget]:
        key = self.lookup_value_key(field_name, is_link_entity)
        record_id = self._record.get(key)
        if record_id is None:
            return None
        return LookupTarget(
            entity_name=self._record.get(f"{key}@{LOOKUP_LOGICAL_NAME_SUFFIX}"),
            record_id=str(record_id),
        )

    def record_id(self, id_attribute: str) -> Optional[str]:
        value = self._record.get(id_attribute)
        return str(value) if value is not None else None

    def __repr__(self) -> str:
        return f"RecordView({dict(self._record)!r})"
