"""
Base model wrapping a raw directory entry.
"""

from typing import Any, Dict, List, Optional

from ldap_query import schema


class Entry:
    """
    A directory entry with case-insensitive attribute access.

    The raw attribute map returned by the connection is kept intact, so every
    attribute remains reachable even when a subclass does not expose it.
    """

    def __init__(self, attributes: Optional[Dict[str, Any]] = None, connection=None):
        """
        Initialize entry.

        Args:
            attributes: Raw attributes keyed by attribute name
            connection: Connection the entry was read through, if any
        """
        self.connection = connection
        self._raw: Dict[str, Any] = {}
        self._attributes: Dict[str, Any] = {}
        if attributes:
            self.set_raw_attributes(attributes)

    def set_raw_attributes(self, attributes: Dict[str, Any]) -> 'Entry':
        self._raw = dict(attributes)
        self._attributes = {str(key).lower(): value for key, value in attributes.items()}
        return self

    def get_raw_attributes(self) -> Dict[str, Any]:
        return dict(self._raw)

    def get_attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    def has_attribute(self, key: str) -> bool:
        return key.lower() in self._attributes

    def get_attribute(self, key: str, index: Optional[int] = None) -> Any:
        """
        Return an attribute's values, or one of them.

        Args:
            key: Attribute name (case-insensitive)
            index: Position of the value to return

        Returns:
            The value list, the value at ``index``, or None if absent
        """
        value = self._attributes.get(key.lower())
        if index is None or value is None:
            return value
        if isinstance(value, (list, tuple)):
            return value[index] if -len(value) <= index < len(value) else None
        return value if index == 0 else None

    def get_first_attribute(self, key: str) -> Any:
        return self.get_attribute(key, 0)

    def set_attribute(self, key: str, value: Any) -> 'Entry':
        if not isinstance(value, (list, tuple)) and key.lower() != 'dn':
            value = [value]
        self._attributes[key.lower()] = value
        self._raw[key.lower()] = value
        return self

    @property
    def dn(self) -> Optional[str]:
        dn = self._attributes.get('dn')
        if dn is None:
            dn = self.get_first_attribute(schema.DISTINGUISHED_NAME)
        return dn

    @property
    def name(self) -> Optional[str]:
        return self.get_first_attribute(schema.COMMON_NAME)

    @property
    def description(self) -> Optional[str]:
        return self.get_first_attribute(schema.DESCRIPTION)

    @property
    def object_category(self) -> Optional[str]:
        return self.get_first_attribute(schema.OBJECT_CATEGORY)

    @property
    def object_classes(self) -> List[str]:
        return list(self.get_attribute(schema.OBJECT_CLASS) or [])

    def to_dict(self) -> Dict[str, Any]:
        return self.get_attributes()

    def __getitem__(self, key: str) -> Any:
        if not self.has_attribute(key):
            raise KeyError(key)
        return self.get_attribute(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has_attribute(key)

    def get(self, key: str, default: Any = None) -> Any:
        value = self.get_attribute(key)
        return default if value is None else value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dn={self.dn!r})"
