import os
import sys

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Make the package and the shared fakes importable without installation
sys.path.insert(0, ROOT)
sys.path.insert(0, os.path.join(ROOT, "tests"))

from solana_blinks.config import KEYPAIR_PATH_ENV, PRIVATE_KEY_ENV
from solana_blinks.registry import set_registry


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    # No test may pick up a real wallet or a process-wide registry
    monkeypatch.delenv(PRIVATE_KEY_ENV, raising=False)
    monkeypatch.delenv(KEYPAIR_PATH_ENV, raising=False)
    set_registry(None)
    yield
    set_registry(None)
