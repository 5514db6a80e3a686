"""Tests for the source health monitor."""

import asyncio
from datetime import datetime, timezone

import pytest

from vigia.clients.base import TransportError
from vigia.config import settings
from vigia.health import HealthMonitor, default_probes, probe_transparencia


STAMP = datetime(2025, 6, 1, tzinfo=timezone.utc)


async def _up():
    return True


async def _down():
    raise TransportError("Network error: refused")


async def _hang():
    await asyncio.sleep(10)
    return True


async def _unavailable():
    return False


def monitor(probes, timeout=0.05):
    return HealthMonitor(probes, timeout=timeout, now=lambda: STAMP)


class TestHealthMonitor:
    @pytest.mark.asyncio
    async def test_full_vector_with_mixed_outcomes(self):
        vector = await monitor({"camara": _up, "senado": _down, "tse": _hang, "transparencia": _unavailable}).probe()

        assert set(vector) == {"camara", "senado", "tse", "transparencia"}
        assert vector["camara"].reachable
        assert not vector["senado"].reachable
        assert "refused" in vector["senado"].detail
        assert not vector["tse"].reachable
        assert "timed out" in vector["tse"].detail
        assert not vector["transparencia"].reachable
        assert vector["camara"].last_probed_at == STAMP

    @pytest.mark.asyncio
    async def test_probes_run_concurrently(self):
        loop = asyncio.get_running_loop()
        start = loop.time()

        await monitor({"a": _hang, "b": _hang, "c": _hang}, timeout=0.1).probe()

        assert loop.time() - start < 0.25

    @pytest.mark.asyncio
    async def test_remembers_last_vector(self):
        health = monitor({"camara": _up})
        vector = await health.probe()
        assert health.last == vector

    @pytest.mark.asyncio
    async def test_to_dict(self):
        vector = await monitor({"camara": _up}).probe()
        assert vector["camara"].to_dict() == {
            "reachable": True,
            "last_probed_at": STAMP.isoformat(),
            "detail": "",
        }

    def test_default_probes_cover_every_source(self):
        assert set(default_probes()) == {"camara", "senado", "tse", "transparencia"}


@pytest.mark.asyncio
async def test_transparencia_without_key_is_unreachable(mocker):
    mocker.patch.object(settings, "transparencia_api_key", None)
    assert await probe_transparencia() is False
