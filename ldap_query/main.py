"""
Command line interface for running directory queries.
"""

import sys
import json
import logging
import argparse
from typing import Any, List, Optional

from ldap_query.client import DirectoryClient
from ldap_query.config import ConfigurationError, load_config
from ldap_query.exceptions import EntryNotFoundError, LDAPQueryError
from ldap_query.logging_setup import setup_logging
from ldap_query.models import Entry

logger = logging.getLogger(__name__)


def to_json(value: Any) -> Any:
    """Convert entries and raw values into JSON-serializable data."""
    if isinstance(value, Entry):
        return to_json(value.to_dict())
    if isinstance(value, dict):
        return {str(key): to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    if isinstance(value, bytes):
        return value.hex()
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Query Active Directory over LDAP')
    parser.add_argument('--config', '-c', help='Path to configuration file')

    subparsers = parser.add_subparsers(dest='command', required=True)

    find = subparsers.add_parser('find', help='Find one entry by ambiguous name')
    find.add_argument('name')
    find.add_argument('--select', '-s', action='append', help='Attribute to return')

    search = subparsers.add_parser('search', help='Search with attribute predicates')
    search.add_argument('--equals', '-e', action='append', default=[], metavar='FIELD=VALUE')
    search.add_argument('--contains', action='append', default=[], metavar='FIELD=VALUE')
    search.add_argument('--starts-with', action='append', default=[], metavar='FIELD=VALUE')
    search.add_argument('--ends-with', action='append', default=[], metavar='FIELD=VALUE')
    search.add_argument('--has', action='append', default=[], metavar='FIELD')
    search.add_argument('--select', '-s', action='append', help='Attribute to return')
    search.add_argument('--dn', help='DN to search under (defaults to the base DN)')
    search.add_argument('--listing', action='store_true', help='Only return immediate children')
    search.add_argument('--sort', help='Attribute to sort by')
    search.add_argument('--direction', choices=['asc', 'desc'], default='asc')
    search.add_argument('--page-size', type=int, help='Use paged results with this page size')

    members = subparsers.add_parser('members', help='List the users in a group')
    members.add_argument('group')
    members.add_argument('--select', '-s', action='append', help='Attribute to return')

    groups = subparsers.add_parser('groups', help='List the groups a user belongs to')
    groups.add_argument('username')
    groups.add_argument('--direct', action='store_true', help='Skip nested groups')

    subparsers.add_parser('base-dn', help='Print the base DN')

    return parser


def _split(pair: str):
    field, sep, value = pair.partition('=')
    if not sep or not field:
        raise ValueError(f"Expected FIELD=VALUE, got {pair!r}")
    return field, value


def run_command(client: DirectoryClient, args: argparse.Namespace) -> Any:
    """Execute a parsed command against a connected client."""
    if args.command == 'find':
        return client.search().select(args.select).find_or_fail(args.name)

    if args.command == 'members':
        return client.groups().members(args.group, args.select)

    if args.command == 'groups':
        return client.users().groups(args.username, recursive=not args.direct)

    if args.command == 'base-dn':
        return client.get_base_dn()

    search = client.search().select(args.select)
    if args.dn:
        search.set_dn(args.dn)
    if args.listing:
        search.recursive(False)
    for pair in args.equals:
        search.where(*_split(pair))
    for pair in args.contains:
        search.where_contains(*_split(pair))
    for pair in args.starts_with:
        search.where_starts_with(*_split(pair))
    for pair in args.ends_with:
        search.where_ends_with(*_split(pair))
    for field in args.has:
        search.where_has(field)
    if args.sort:
        search.sort_by(args.sort, args.direction)

    logger.debug(f"Running filter {search.get_query() or '(all)'}")

    if args.page_size:
        paginator = search.paginate(args.page_size)
        return None if paginator is None else paginator.results
    return search.get()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line interface."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.get('logging'))

    try:
        with DirectoryClient(config) as client:
            client.connect()
            result = run_command(client, args)
    except EntryNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1
    except (LDAPQueryError, ValueError) as e:
        logger.error(f"Command {args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result is None:
        print("Query failed or returned no result", file=sys.stderr)
        return 1

    print(json.dumps(to_json(result), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
