"""
Pytest configuration for storefront backend tests.

Sets up test environment and global fixtures.
"""
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pytest
from unittest.mock import MagicMock

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test-key-secret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("RESEND_API_KEY", "")


@dataclass
class FakeResponse:
    """Stand-in for a postgrest APIResponse."""
    data: Any = None
    count: Optional[int] = None


class FakeQuery:
    """
    Chainable query builder for one table.

    Every builder method (select, eq, order, insert...) is recorded and
    returns the builder; execute() returns the next queued response, or an
    empty response when the queue is exhausted. Queued exceptions are raised.
    """

    def __init__(self) -> None:
        self.responses: List[Any] = []
        self.calls: List[Tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        if name.startswith("__"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def execute(self) -> FakeResponse:
        self.calls.append(("execute", (), {}))
        if not self.responses:
            return FakeResponse(data=[])
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def args_of(self, method: str) -> List[tuple]:
        """Positional args of every call to `method`, in order."""
        return [args for name, args, _ in self.calls if name == method]


class FakeSupabase:
    """
    Minimal Supabase client double with one FakeQuery per table.

    rpc and storage are MagicMocks so tests can configure them directly.
    """

    def __init__(self) -> None:
        self.queries: Dict[str, FakeQuery] = {}
        self.rpc = MagicMock()
        self.rpc.return_value.execute.return_value = FakeResponse(data=None)
        self.storage = MagicMock()

    def table(self, name: str) -> FakeQuery:
        if name not in self.queries:
            self.queries[name] = FakeQuery()
        return self.queries[name]

    def on(self, name: str, *responses: Any) -> FakeQuery:
        """Queue responses for the next execute() calls on a table."""
        query = self.table(name)
        query.responses.extend(responses)
        return query


@pytest.fixture
def supabase_client():
    """
    Mock Supabase client for tests that only need call assertions.
    """
    mock_client = MagicMock()
    return mock_client


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def db_response():
    """Factory for postgrest-like responses: db_response([...], count=3)."""
    def make(data: Any = None, count: Optional[int] = None) -> FakeResponse:
        return FakeResponse(data=data, count=count)
    return make


@pytest.fixture(autouse=True)
def reset_ip_rate_limiter():
    """Each test starts with an empty in-memory IP limiter."""
    from storefront.services.rate_limit import global_rate_limiter
    global_rate_limiter.reset()
    yield
    global_rate_limiter.reset()


@pytest.fixture
def admin_supabase() -> FakeSupabase:
    """Separate double for the service role client."""
    return FakeSupabase()


TEST_USER_ID = "11111111-2222-4333-8444-555555555555"
CSRF_TOKEN = "a" * 64


@pytest.fixture
def client():
    """Create test client for FastAPI app."""
    from fastapi.testclient import TestClient
    from storefront.main import app
    return TestClient(app)


@pytest.fixture
def auth_user():
    from storefront.auth.dependencies import AuthenticatedUser
    return AuthenticatedUser(
        user_id=TEST_USER_ID,
        access_token="test-access-token",
        email="asha@example.com",
    )


@pytest.fixture
def authenticated(auth_user):
    """Override get_authenticated_user to return auth_user."""
    from storefront.auth.dependencies import get_authenticated_user
    from storefront.main import app

    app.dependency_overrides[get_authenticated_user] = lambda: auth_user
    yield auth_user
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(auth_user):
    """
    Test client acting as an admin, with a matching CSRF cookie and header.

    Only require_admin is overridden; the CSRF check runs for real.
    """
    from fastapi.testclient import TestClient
    from storefront.auth.dependencies import require_admin
    from storefront.main import app

    auth_user.roles = ["admin"]
    app.dependency_overrides[require_admin] = lambda: auth_user
    test_client = TestClient(
        app,
        headers={"x-csrf-token": CSRF_TOKEN},
        cookies={"XSRF-TOKEN": CSRF_TOKEN},
    )
    yield test_client
    app.dependency_overrides.clear()
