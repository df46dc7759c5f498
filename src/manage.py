"""Codebook storefront management CLI.

Creates and drops the DynamoDB tables (with their secondary indexes) and
issues bearer tokens for local testing.

Usage:
    python src/manage.py setup-db               # Create all tables
    python src/manage.py setup-db --table orders
    python src/manage.py drop-db                # Drop all tables
    python src/manage.py issue-token --id u-1 --email a@b.c --role admin
"""

import argparse
import sys

import boto3
from botocore.exceptions import ClientError

from shared.config import get_settings
from storage.port import INDEXES, Table


def table_definition(table: Table, prefix: str) -> dict:
    """``create_table`` arguments for ``table``: string ``id`` key, one GSI per indexed attribute."""
    indexes = [(attribute, name) for (t, attribute), name in INDEXES.items() if t is table]
    attribute_types = {"id": "S"}
    for attribute, _ in indexes:
        # featured is stored as the number 1 so that only featured products enter the index
        attribute_types[attribute] = "N" if attribute == "featured" else "S"

    definition = {
        "TableName": f"{prefix}-{table.value}",
        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": a, "AttributeType": t} for a, t in attribute_types.items()],
        "BillingMode": "PAY_PER_REQUEST",
    }
    if indexes:
        definition["GlobalSecondaryIndexes"] = [
            {
                "IndexName": name,
                "KeySchema": [{"AttributeName": attribute, "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
            for attribute, name in indexes
        ]
    return definition


def _targets(names):
    return [Table(name) for name in names] if names else list(Table)


def setup_tables(client, prefix: str, tables=None) -> None:
    """Create tables for the specified (or all) tables, skipping ones that exist."""
    for table in _targets(tables):
        definition = table_definition(table, prefix)
        print(f"Creating {definition['TableName']}...")
        try:
            client.create_table(**definition)
        except ClientError as exc:
            if exc.response["Error"]["Code"] != "ResourceInUseException":
                raise
            print(f"  {definition['TableName']} already exists.")
            continue
        client.get_waiter("table_exists").wait(TableName=definition["TableName"])
        print(f"  {definition['TableName']} ready.")
    print("Done.")


def drop_tables(client, prefix: str, tables=None) -> None:
    for table in _targets(tables):
        name = f"{prefix}-{table.value}"
        print(f"Dropping {name}...")
        try:
            client.delete_table(TableName=name)
        except ClientError as exc:
            if exc.response["Error"]["Code"] != "ResourceNotFoundException":
                raise
            print(f"  {name} does not exist.")
            continue
        client.get_waiter("table_not_exists").wait(TableName=name)
        print(f"  {name} dropped.")
    print("Done.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Codebook storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    table_choices = [t.value for t in Table]
    setup_parser = subparsers.add_parser("setup-db", help="Create all DynamoDB tables")
    setup_parser.add_argument("--table", choices=table_choices, nargs="*", help="Specific table(s) (default: all)")

    drop_parser = subparsers.add_parser("drop-db", help="Drop all DynamoDB tables")
    drop_parser.add_argument("--table", choices=table_choices, nargs="*", help="Specific table(s) (default: all)")

    token_parser = subparsers.add_parser("issue-token", help="Print a bearer token for a user")
    token_parser.add_argument("--id", required=True)
    token_parser.add_argument("--email")
    token_parser.add_argument("--name")
    token_parser.add_argument("--role", default="user", choices=["user", "admin"])

    args = parser.parse_args(argv)
    settings = get_settings()

    if args.command == "issue-token":
        from identity.auth import Principal, issue_token
        from shared.errors import ServiceNotConfiguredError

        try:
            print(issue_token(Principal(id=args.id, email=args.email, name=args.name, role=args.role)))
        except ServiceNotConfiguredError:
            parser.error("JWT_SECRET must be set to issue tokens")
        return

    client = boto3.client("dynamodb", region_name=settings.runtime.region)
    if args.command == "setup-db":
        setup_tables(client, settings.runtime.table_prefix, args.table)
    elif args.command == "drop-db":
        drop_tables(client, settings.runtime.table_prefix, args.table)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
