"""Tests for campaign funnel counters."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fakeredis import FakeAsyncRedis

from deepform.services.funnel import FUNNEL_STEPS, FunnelTracker

pytestmark = pytest.mark.unit


@pytest.fixture
async def redis():
    """Provide fakeredis async client."""
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


async def test_unset_funnel_is_all_zero(redis):
    funnel = await FunnelTracker(redis).get_funnel("c1")

    assert funnel == {step: 0 for step in FUNNEL_STEPS}


async def test_record_increments_one_step(redis):
    tracker = FunnelTracker(redis)

    await tracker.record("c1", "pageViews")
    assert await tracker.record("c1", "pageViews") == 2
    await tracker.record("c1", "sessionsCreated")

    assert await tracker.get_funnel("c1") == {
        "pageViews": 2,
        "sessionsCreated": 1,
        "interviewsStarted": 0,
        "requirementsReached": 0,
    }


async def test_campaigns_are_counted_separately(redis):
    tracker = FunnelTracker(redis)

    await tracker.record("c1", "pageViews")

    assert (await tracker.get_funnel("c2"))["pageViews"] == 0


async def test_unknown_step_rejected(redis):
    with pytest.raises(ValueError, match="Unknown funnel step"):
        await FunnelTracker(redis).record("c1", "purchases")


async def test_redis_failure_is_swallowed():
    broken = MagicMock()
    broken.incr = AsyncMock(side_effect=ConnectionError("redis down"))

    assert await FunnelTracker(broken).record("c1", "pageViews") is None
