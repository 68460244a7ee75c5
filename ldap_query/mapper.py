"""
Maps raw directory entries to typed models.

The model is chosen from the first RDN of the entry's ``objectCategory``
(``CN=Group,CN=Schema,...`` selects Group). Unknown or missing categories
produce a plain Entry; in every case the full raw attribute map is kept.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional, Type

from ldap_query import schema
from ldap_query.models import Computer, Container, Entry, ExchangeServer, Group, Printer, User
from ldap_query.utils import explode_dn

logger = logging.getLogger(__name__)


class ObjectCategory(Enum):
    """Object categories that map to a dedicated model."""

    COMPUTER = schema.OBJECT_CATEGORY_COMPUTER
    PERSON = schema.OBJECT_CATEGORY_PERSON
    GROUP = schema.OBJECT_CATEGORY_GROUP
    CONTAINER = schema.OBJECT_CATEGORY_CONTAINER
    PRINTER = schema.OBJECT_CATEGORY_PRINTER
    EXCHANGE_SERVER = schema.OBJECT_CATEGORY_EXCHANGE_SERVER


MODELS: Dict[ObjectCategory, Type[Entry]] = {
    ObjectCategory.COMPUTER: Computer,
    ObjectCategory.PERSON: User,
    ObjectCategory.GROUP: Group,
    ObjectCategory.CONTAINER: Container,
    ObjectCategory.PRINTER: Printer,
    ObjectCategory.EXCHANGE_SERVER: ExchangeServer,
}


def resolve_category(attributes: Dict[str, Any]) -> Optional[ObjectCategory]:
    """Return the ObjectCategory of a raw entry, or None if unrecognized."""
    values = None
    for key, value in attributes.items():
        if str(key).lower() == schema.OBJECT_CATEGORY:
            values = value
            break

    if isinstance(values, (list, tuple)):
        values = values[0] if values else None
    if not values:
        return None

    if isinstance(values, bytes):
        values = values.decode('utf-8', errors='replace')

    components = explode_dn(values)
    if not components:
        return None

    try:
        return ObjectCategory(components[0].lower())
    except ValueError:
        return None


class EntryMapper:
    """Creates model instances from raw attribute maps."""

    def __init__(self, connection=None):
        self.connection = connection

    def map(self, attributes: Dict[str, Any]) -> Entry:
        category = resolve_category(attributes)
        model = MODELS.get(category, Entry)
        logger.debug(f"Mapping {attributes.get('dn')!r} to {model.__name__}")
        return model(connection=self.connection).set_raw_attributes(attributes)
