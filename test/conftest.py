"""
Test Configuration

- Environment setup happens before any application import, so settings and the
  loguru sinks pick up the test values
- Kvrocks keys get a worker-specific prefix (pytest-xdist safe)
- Logs go to test/test_log instead of logs/
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    if worker_id == 'master':
        os.environ['KVROCKS_KEY_PREFIX'] = 'test_'
    else:
        os.environ['KVROCKS_KEY_PREFIX'] = f'test_{worker_id}_'

    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['LOG_DIR'] = str(test_log_dir)
    os.environ['LOG_FILE_PREFIX'] = 'test_'

    os.environ.setdefault('SERVICE_NAME', 'acquisition-service-test')


_early_setup_test_environment()

import pytest  # noqa: E402

from src.platform.config.di import cleanup  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_container_singletons():
    yield
    cleanup()
