import os
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parent

if Path.cwd() != PROJECT_ROOT:
    os.chdir(PROJECT_ROOT)


@pytest.fixture(autouse=True)
def _clear_tcpcheck_environment(monkeypatch):
    for key in list(os.environ):
        if key.startswith('TCPCHECK_'):
            monkeypatch.delenv(key, raising=False)
