from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from boxoffice.core import metrics
from boxoffice.main import app


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None, None, None]:
    # The metric counters are process-global and would leak across tests.
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    test_client = TestClient(app)
    yield test_client
    test_client.close()
