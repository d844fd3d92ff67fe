"""Shared fixtures: fake Chef clients, generated client keys, log capture."""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from loguru import logger

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from chef_exporter.core.config import ExporterConfig  # noqa: E402
from chef_exporter.core.errors import ChefAPIError  # noqa: E402

NOW = 1700000100


class FakeChefClient:
    """Stands in for ChefClient; returns canned rows and records searches."""

    def __init__(self, inventory, key_pem=b""):
        self.inventory = inventory
        self.key_pem = key_pem
        self.closed = False

    def partial_search(self, index, query, keys, start=0, rows=None):
        self.inventory.searches.append((index, query, keys))
        self.inventory.enter()
        try:
            if self.inventory.error is not None:
                raise self.inventory.error
            total = len(self.inventory.rows) if self.inventory.total is None else self.inventory.total
            return {"total": total, "start": 0, "rows": list(self.inventory.rows)}
        finally:
            self.inventory.leave()

    def close(self):
        self.closed = True


class FakeInventory:
    """Mutable remote state shared by every FakeChefClient of a test."""

    def __init__(self, rows=None, delay=0.0):
        self.rows = list(rows or [])
        self.total = None
        self.error = None
        self.delay = delay
        self.searches = []
        self.key_pems = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def enter(self):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        if self.delay:
            time.sleep(self.delay)

    def leave(self):
        with self._lock:
            self.active -= 1

    def client_factory(self, config, key_pem):
        self.key_pems.append(key_pem)
        return FakeChefClient(self, key_pem)

    def fail_with(self, message="connection refused"):
        self.error = ChefAPIError(message)


@pytest.fixture
def inventory():
    return FakeInventory()


@pytest.fixture
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def key_file(tmp_path, private_key):
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    path = tmp_path / "exporter.pem"
    path.write_bytes(pem)
    return path


@pytest.fixture
def config(key_file):
    return ExporterConfig(
        client_name="exporter",
        client_key_path=str(key_file),
        server_url="https://chef.example.com/organizations/acme",
    )


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda m: messages.append((m.record["level"].name, m.record["message"])), level="DEBUG")
    yield messages
    logger.remove(handler_id)
