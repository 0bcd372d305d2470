import copy
import os
import sys
import uuid
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
sys.path.append(project_root)

os.environ['OPENAI_API_KEY'] = 'test-openai-key'
os.environ['ELEVENLABS_WEBHOOK_SECRET'] = 'test-webhook-secret'
os.environ['ELEVENLABS_API_KEY'] = 'test-elevenlabs-key'
os.environ['AGENT_ID'] = 'test-agent'

WRITE_OPERATIONS = {'insert', 'update', 'upsert', 'delete'}


class FakeQuery:
    """Just enough of the postgrest query builder for the Database gateway"""

    def __init__(self, store, table):
        self.store = store
        self.table = table
        self.operation = 'select'
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.max_rows = None

    def select(self, *columns):
        self.operation = 'select'
        return self

    def insert(self, payload):
        self.operation, self.payload = 'insert', payload
        return self

    def update(self, payload):
        self.operation, self.payload = 'update', payload
        return self

    def upsert(self, payload, on_conflict=''):
        self.operation, self.payload, self.on_conflict = 'upsert', payload, on_conflict
        return self

    def delete(self):
        self.operation = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def execute(self):
        self.store.operations.append((self.table, self.operation))
        if (self.table, self.operation) in self.store.failures:
            raise Exception(f"{self.operation} on {self.table} failed")

        rows = self.store.tables.setdefault(self.table, [])
        matching = [row for row in rows if all(f(row) for f in self.filters)]

        if self.operation == 'select':
            data = matching[:self.max_rows] if self.max_rows else matching
        elif self.operation == 'insert':
            records = self.payload if isinstance(self.payload, list) else [self.payload]
            data = []
            for record in records:
                row = {'id': str(uuid.uuid4()), **copy.deepcopy(record)}
                rows.append(row)
                data.append(row)
        elif self.operation == 'update':
            for row in matching:
                row.update(copy.deepcopy(self.payload))
            data = matching
        elif self.operation == 'upsert':
            key = self.on_conflict or 'id'
            records = self.payload if isinstance(self.payload, list) else [self.payload]
            data = []
            for record in records:
                existing = next((r for r in rows if r.get(key) == record.get(key)), None)
                if existing:
                    existing.update(copy.deepcopy(record))
                    data.append(existing)
                else:
                    row = {'id': str(uuid.uuid4()), **copy.deepcopy(record)}
                    rows.append(row)
                    data.append(row)
        else:
            for row in matching:
                rows.remove(row)
            data = matching

        return SimpleNamespace(data=copy.deepcopy(data))


class FakeRpc:
    def __init__(self, store, name, params):
        self.store = store
        self.name = name
        self.params = params

    def execute(self):
        self.store.operations.append((self.name, 'rpc'))
        handler = self.store.functions.get(self.name)
        return SimpleNamespace(data=handler(self.params) if handler else [])


class FakeAuth:
    def __init__(self):
        self.tokens = {}

    def get_user(self, token):
        if token not in self.tokens:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=self.tokens[token]))


class FakeSupabase:
    def __init__(self):
        self.reset()

    def reset(self):
        self.tables = {}
        self.functions = {}
        self.operations = []
        self.failures = set()
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        return FakeRpc(self, name, params or {})

    def rows(self, table):
        return self.tables.get(table, [])

    def writes(self):
        return [op for op in self.operations if op[1] in WRITE_OPERATIONS]


# Replace Supabase before importing the app
import supabase
fake_supabase = FakeSupabase()

def mock_create_client(*args, **kwargs):
    return fake_supabase

supabase.create_client = mock_create_client

# Now we can safely import the app
from api import routes
from lib.openai_client import OpenAIClient


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeLLM:
    """Scripted replies for the OpenAI chat completions and responses APIs"""

    def __init__(self):
        self.client = MagicMock()
        self.openai_client = OpenAIClient(client=self.client)

    def chat_replies(self, *contents):
        self.client.chat.completions.create.side_effect = [completion(c) for c in contents]

    def outputs(self, *texts):
        self.client.responses.create.side_effect = [SimpleNamespace(output_text=t) for t in texts]

    def chat_prompts(self):
        return [
            call.kwargs['messages'][-1]['content']
            for call in self.client.chat.completions.create.call_args_list
        ]

    def output_prompts(self):
        return [call.kwargs['input'] for call in self.client.responses.create.call_args_list]


@pytest.fixture
def fake_db():
    fake_supabase.reset()
    yield fake_supabase
    fake_supabase.reset()


@pytest.fixture
def llm():
    fake = FakeLLM()
    with patch.object(routes.openai_client, 'client', fake.client):
        yield fake


@pytest.fixture
def test_client(fake_db, llm):
    routes.app.config['TESTING'] = True
    return routes.app.test_client()


@pytest.fixture
def user(fake_db):
    record = {
        'id': 'user-123',
        'email': 'client@example.com',
        'bio': 'A thoughtful person who is navigating work stress.',
        'therapy_summary': 'You have been exploring your stress at work.',
        'goals': 'Sleep earlier',
        'themes': 'work stress, sleep'
    }
    fake_db.tables['users'] = [record]
    return record


@pytest.fixture
def therapy_module(fake_db):
    record = {
        'name': 'Default Daily Check In',
        'greeting': 'Hi, welcome back.',
        'instructions': 'Check in on mood, then review the agenda.',
        'agenda': 'Mood check. Review week. Plan next steps.'
    }
    fake_db.tables['therapy_modules'] = [record]
    return record
