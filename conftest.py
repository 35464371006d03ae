"""Root conftest: puts the test environment in place before messaging_service.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for raw in _env_test.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())

# Tests never talk to Redis; sessions and the bus live in the test process.
os.environ["EVENT_BUS_BACKEND"] = "local"
