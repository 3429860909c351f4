"""
Shared base for records persisted in the tree store.

Records use snake_case attributes in Python and camelCase keys in the store
(and on the wire), so every model is built with aliases and
'populate_by_name'. The record's own key ('id') is part of its store path,
never of its stored value.
"""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    broadcast_exclude: ClassVar[set[str]] = set()
    """Fields left out when the record is pushed to topic subscribers."""

    def to_record(self) -> dict[str, Any]:
        """Value to write under the record's path: aliased keys, no id, no unset optionals."""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)


def keyed_map(value: Any) -> Any:
    """
    Undo the tree store's list conversion of maps keyed by integer-like ids.

    The database reads a map such as {'1': x, '2': y} back as [None, x, y];
    this turns it back into {'1': x, '2': y}. Other values pass through.
    """
    if isinstance(value, list):
        return {str(index): item for index, item in enumerate(value) if item is not None}
    return value
