"""
Tests for chain and relayer readiness polling.
"""

import pytest
import requests

from ibc_harness import readiness
from ibc_harness.errors import ChainNotReadyError, RelayerNotReadyError
from ibc_harness.readiness import wait_for_chain, wait_for_relayer


class FakeResponse:
    def __init__(self, height):
        self.height = height

    def raise_for_status(self):
        pass

    def json(self):
        return {"result": {"sync_info": {"latest_block_height": str(self.height)}}}


class TestWaitForChain:
    def test_ready_after_first_block(self, monkeypatch):
        heights = iter([0, 0, 3])
        monkeypatch.setattr(readiness.requests, "get", lambda url, timeout: FakeResponse(next(heights)))
        sleeps = []
        assert wait_for_chain("http://localhost:26657", attempts=5, interval=0.5, sleep=sleeps.append) == 3
        assert sleeps == [0.5, 0.5]

    def test_unreachable_chain(self, monkeypatch):
        def refuse(url, timeout):
            raise requests.ConnectionError("refused")
        monkeypatch.setattr(readiness.requests, "get", refuse)
        with pytest.raises(ChainNotReadyError, match="3 attempts"):
            wait_for_chain("http://localhost:26657", attempts=3, sleep=lambda s: None)

    def test_status_url(self, monkeypatch):
        urls = []

        def get(url, timeout):
            urls.append(url)
            return FakeResponse(1)
        monkeypatch.setattr(readiness.requests, "get", get)
        wait_for_chain("http://localhost:26657/", sleep=lambda s: None)
        assert urls == ["http://localhost:26657/status"]


class TestWaitForRelayer:
    def test_ready(self, relayer):
        relayer.ready_script.extend([False, True])
        wait_for_relayer(relayer, attempts=3, sleep=lambda s: None)

    def test_never_ready(self, relayer):
        relayer.ready_script.extend([False] * 3)
        with pytest.raises(RelayerNotReadyError):
            wait_for_relayer(relayer, attempts=3, sleep=lambda s: None)
