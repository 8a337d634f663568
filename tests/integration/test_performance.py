"""Performance benchmark tests for kubestate.

All tests are marked with @pytest.mark.performance. They enforce generous
wall-clock budgets over 1000 configmaps, services and pods.
"""

from __future__ import annotations

import time

import pytest

from kubestate.api import MetricsHandler
from kubestate.collector import Builder
from kubestate.models.config import CollectorConfig
from kubestate.models.resources import ResourceType

from .conftest import FakeClusterClient, make_configmap, make_pod, make_service

pytestmark = [pytest.mark.integration, pytest.mark.performance]

_FIXTURE_MULTIPLIER = 1000

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _inject_fixtures(client: FakeClusterClient, multiplier: int) -> None:
    for i in range(multiplier):
        client.inject(ResourceType.CONFIGMAPS, make_configmap(i))
        client.inject(ResourceType.SERVICES, make_service(i))
        client.inject(ResourceType.PODS, make_pod(i))


# ---------------------------------------------------------------------------
# Benchmarks
# ---------------------------------------------------------------------------


class TestScrapeThroughput:
    async def test_initial_sync_under_budget(self, fake_client: FakeClusterClient) -> None:
        """Listing and decoding 3000 objects completes within 10s."""
        _inject_fixtures(fake_client, _FIXTURE_MULTIPLIER)
        builder = Builder(fake_client, CollectorConfig())
        start = time.monotonic()
        builder.build()
        try:
            assert await builder.wait_for_sync(timeout=10.0)
            elapsed = time.monotonic() - start
        finally:
            await builder.stop()
        assert elapsed < 10.0, f"initial sync took {elapsed:.2f}s"

    async def test_repeated_scrapes_under_budget(self, fake_client: FakeClusterClient) -> None:
        """Twenty full scrapes of 3000 objects average under 2s each, with stable output."""
        _inject_fixtures(fake_client, _FIXTURE_MULTIPLIER)
        builder = Builder(fake_client, CollectorConfig(collectors=["configmaps", "pods", "services"]))
        builder.build()
        try:
            assert await builder.wait_for_sync(timeout=10.0)
            handler = MetricsHandler(builder.collectors)

            first = handler.render()
            start = time.monotonic()
            for _ in range(20):
                body = handler.render()
                assert len(body) == len(first)
            elapsed = time.monotonic() - start
        finally:
            await builder.stop()

        assert first.count("\nkube_service_info{") == _FIXTURE_MULTIPLIER
        assert first.count("\nkube_configmap_info{") == _FIXTURE_MULTIPLIER
        assert elapsed / 20 < 2.0, f"average scrape took {elapsed / 20:.3f}s"
