"""
Pytest configuration.

Adds the project directory to the Python path so that tests can import
domain, repositories, services, api and client, and provides the shared
fakes for Supabase and the WhatsApp gateway.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the zapcorretor-platform directory to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.profile import Profile, Role  # noqa: E402
from tests.fakes import ADMIN_ID, AGENT_ID, TENANT_ID, FakeSupabase, GatewayStub, TickingClock  # noqa: E402


@pytest.fixture
def db() -> FakeSupabase:
    fake = FakeSupabase()
    fake.add_profile(AGENT_ID, email="Joao.Silva@imob.com", role="AGENT", token="agent-token")
    return fake


@pytest.fixture
def gateway_stub() -> GatewayStub:
    return GatewayStub()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def agent() -> Profile:
    return Profile(profile_id=AGENT_ID, role=Role.AGENT, email="Joao.Silva@imob.com")


@pytest.fixture
def tenant_admin(db: FakeSupabase) -> Profile:
    db.add_profile(ADMIN_ID, email="admin@imob.com", role="ADMIN_TENANT", tenant_id=TENANT_ID, token="admin-token")
    return Profile(profile_id=ADMIN_ID, role=Role.ADMIN_TENANT, email="admin@imob.com", tenant_id=TENANT_ID)
