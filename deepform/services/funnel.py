"""Campaign funnel counters stored in Redis.

Steps, in funnel order:
- pageViews: the campaign page was opened
- sessionsCreated: a respondent joined
- interviewsStarted: a respondent sent their first message
- requirementsReached: a respondent completed and facts were extracted

Counters are incremented by the matching endpoints and never derived from
stored facts. Recording is best-effort: a Redis failure is logged and the
request carries on.
"""

import structlog
from redis.asyncio import Redis

logger = structlog.get_logger(__name__)

FUNNEL_STEPS: tuple[str, ...] = (
    "pageViews",
    "sessionsCreated",
    "interviewsStarted",
    "requirementsReached",
)


class FunnelTracker:
    """Per-campaign funnel counters."""

    def __init__(self, redis: Redis):
        self.redis = redis

    @staticmethod
    def _key(campaign_id: str, step: str) -> str:
        return f"funnel:{campaign_id}:{step}"

    async def record(self, campaign_id: str, step: str) -> int | None:
        """Increment one funnel step.

        Returns:
            New count, or None if Redis was unavailable
        """
        if step not in FUNNEL_STEPS:
            raise ValueError(f"Unknown funnel step: {step}")

        try:
            return await self.redis.incr(self._key(campaign_id, step))
        except Exception as e:
            logger.warning(
                "funnel_record_failed",
                campaign_id=campaign_id,
                step=step,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def get_funnel(self, campaign_id: str) -> dict[str, int]:
        """Current counts for every step (0 when unset)."""
        values = await self.redis.mget([self._key(campaign_id, step) for step in FUNNEL_STEPS])
        return {step: int(value) if value else 0 for step, value in zip(FUNNEL_STEPS, values)}
