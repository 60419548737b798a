"""Create the meetings table and its status/createdAt index."""
import argparse

from meeting_tool.config import get_settings
from meeting_tool.utils.auth_aws import client_config, get_session

settings = get_settings()

parser = argparse.ArgumentParser()
parser.add_argument('--table', default=settings.dynamodb_table_name)
parser.add_argument('--index', default=settings.dynamodb_status_index)
args = parser.parse_args()

client = get_session(settings).client('dynamodb', config=client_config(settings))
client.create_table(
    TableName=args.table,
    AttributeDefinitions=[
        {'AttributeName': 'id', 'AttributeType': 'S'},
        {'AttributeName': 'status', 'AttributeType': 'S'},
        {'AttributeName': 'createdAt', 'AttributeType': 'S'},
    ],
    KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
    GlobalSecondaryIndexes=[
        {
            'IndexName': args.index,
            'KeySchema': [
                {'AttributeName': 'status', 'KeyType': 'HASH'},
                {'AttributeName': 'createdAt', 'KeyType': 'RANGE'},
            ],
            'Projection': {'ProjectionType': 'ALL'},
        }
    ],
    BillingMode='PAY_PER_REQUEST',
)
client.get_waiter('table_exists').wait(TableName=args.table)
print(f'Created table {args.table} with index {args.index}')
