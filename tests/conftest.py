import json
import os
import uuid
from types import SimpleNamespace

# Settings()는 import 시점에 만들어지므로 app import 전에 환경변수 설정
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("VAPI_API_KEY", "test-vapi-key")
os.environ.setdefault("VAPI_WORKFLOW_ID", "wf_test")
os.environ.setdefault("VAPI_WEBHOOK_SECRET", "whsec_test")

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.schemas.interview import FEEDBACK_CATEGORIES
from app.services.generation import TextGenerationService
from app.services.supa_auth import AuthService
from app.services.supabase_client import SupabaseStore
from app.services.vapi_client import VoiceCall


# ---------- Supabase ----------

class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_n = None

    def select(self, *cols):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def upsert(self, payload):
        self.op, self.payload = "upsert", payload
        return self

    def eq(self, col, val):
        self.filters.append(lambda r: r.get(col) == val)
        return self

    def neq(self, col, val):
        self.filters.append(lambda r: r.get(col) != val)
        return self

    def order(self, col, desc=False):
        self.order_by = (col, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def _match(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        if (self.table_name, self.op) in self.db.fail_on:
            raise RuntimeError(f"{self.table_name}.{self.op} unavailable")

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "select":
            data = [dict(r) for r in rows if self._match(r)]
            if self.order_by:
                col, desc = self.order_by
                data.sort(key=lambda r: r.get(col) or "", reverse=desc)
            if self.limit_n is not None:
                data = data[: self.limit_n]
            return SimpleNamespace(data=data)

        if self.op == "insert":
            row = dict(self.payload)
            row.setdefault("id", str(uuid.uuid4()))
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        if self.op == "update":
            data = []
            for r in rows:
                if self._match(r):
                    r.update(self.payload)
                    data.append(dict(r))
            return SimpleNamespace(data=data)

        if self.op == "upsert":
            row = dict(self.payload)
            rows[:] = [r for r in rows if r.get("id") != row["id"]]
            rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        raise AssertionError(self.op)


class FakeAuth:
    def __init__(self):
        self.accounts = {}

    def sign_up(self, creds):
        if creds["email"] in self.accounts:
            raise RuntimeError("User already registered")
        user_id = str(uuid.uuid4())
        self.accounts[creds["email"]] = (user_id, creds["password"])
        return SimpleNamespace(user=SimpleNamespace(id=user_id))

    def sign_in_with_password(self, creds):
        account = self.accounts.get(creds["email"])
        if account is None or account[1] != creds["password"]:
            raise RuntimeError("Invalid login credentials")
        return SimpleNamespace(user=SimpleNamespace(id=account[0]))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.fail_on = set()
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)


# ---------- OpenAI ----------

class FakeCompletions:
    def __init__(self):
        self.responses = []
        self.calls = []
        self.error = None

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        content = self.responses.pop(0)
        if not isinstance(content, str):
            content = json.dumps(content)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeOpenAI:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)


# ---------- Vapi ----------

class FakeVoice:
    def __init__(self):
        self.started = []
        self.stopped = []
        self.error = None
        self.stop_error = None

    def start(self, assistant=None, workflow_id=None, variable_values=None):
        if self.error is not None:
            raise self.error
        self.started.append(
            {"assistant": assistant, "workflow_id": workflow_id, "variable_values": variable_values}
        )
        return VoiceCall(id=f"call-{len(self.started)}", web_call_url="https://vapi.test/web")

    def stop(self, call):
        self.stopped.append(call.id)
        if self.stop_error is not None:
            raise self.stop_error


# ---------- fixtures ----------

def make_feedback_payload(total_score=72):
    return {
        "total_score": total_score,
        "category_scores": [
            {"name": name, "score": 70 + i, "comment": f"{name} comment"}
            for i, name in enumerate(FEEDBACK_CATEGORIES)
        ],
        "strengths": ["Knows React"],
        "areas_for_improvement": ["Give concrete examples"],
        "final_assessment": "Solid junior candidate.",
    }


@pytest.fixture
def feedback_payload():
    return make_feedback_payload()


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def store(fake_supabase):
    return SupabaseStore(fake_supabase)


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def generator(fake_openai):
    return TextGenerationService(fake_openai, model="gpt-test")


@pytest.fixture
def voice():
    return FakeVoice()


@pytest.fixture
def app_client(fake_supabase, store, generator, voice):
    from app import deps
    from app.main import app
    from app.services.voice_session import VoiceSessionRegistry

    registry = VoiceSessionRegistry()
    app.dependency_overrides[deps.get_supabase] = lambda: fake_supabase
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_generator] = lambda: generator
    app.dependency_overrides[deps.get_voice_client] = lambda: voice
    app.dependency_overrides[deps.get_session_registry] = lambda: registry

    with TestClient(app) as client:
        client.registry = registry
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def user(store):
    return store.create_user({"id": "user-1", "name": "Ada", "email": "ada@example.com"})


@pytest.fixture
def auth_client(app_client, fake_supabase, store, user):
    auth = AuthService(fake_supabase, store, settings.session_secret, settings.session_max_age)
    app_client.cookies.set(settings.session_cookie_name, auth.issue_session(user["id"], user["email"]))
    return app_client
