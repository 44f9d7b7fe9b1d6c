from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest

from spaudit.config_utils import AuditSettings
from spaudit.context import AuditContext
from spaudit.retry import RetryPolicy
from tests.fakes import FakeRemote, user


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def policy(sleeps) -> RetryPolicy:
    return RetryPolicy(max_attempts=10, initial_delay=5.0, sleep=sleeps.append)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def alice():
    return user("alice", 11)


@pytest.fixture
def make_context(remote, policy):
    def _make(**settings) -> AuditContext:
        return AuditContext(remote=remote, policy=policy, settings=AuditSettings(**settings))

    return _make
