# scripts/create_incidents_table.py
"""
Create the incidents table with its status/created_at GSI.

Usage:
  python scripts/create_incidents_table.py [--wait]

Env vars (same as safetywatch.config):
  AWS_REGION=eu-north-1
  INCIDENTS_TABLE=Incidents
  INCIDENTS_STATUS_INDEX=status-created_at-index
"""
import argparse
import sys

from botocore.exceptions import ClientError

from safetywatch import config
from safetywatch.db import dynamo


def table_definition() -> dict:
    return {
        "TableName": config.INCIDENTS_TABLE,
        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "status", "AttributeType": "S"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": config.INCIDENTS_STATUS_INDEX,
                "KeySchema": [
                    {"AttributeName": "status", "KeyType": "HASH"},
                    {"AttributeName": "created_at", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }


def main():
    parser = argparse.ArgumentParser(description="Create the SafetyWatch incidents table.")
    parser.add_argument("--wait", action="store_true",
                        help="Block until the table is ACTIVE.")
    args = parser.parse_args()

    try:
        table = dynamo.dynamodb.create_table(**table_definition())
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ResourceInUseException":
            print(f"Table {config.INCIDENTS_TABLE} already exists.")
            return
        print(f"Error creating table: {e}")
        sys.exit(1)

    print(f"Creating {config.INCIDENTS_TABLE} in {config.AWS_REGION} ...")
    if args.wait:
        table.wait_until_exists()
        print("Table is ACTIVE.")


if __name__ == "__main__":
    main()
