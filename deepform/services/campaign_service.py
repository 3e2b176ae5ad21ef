"""CampaignService: campaigns, respondent sessions and cross-respondent analytics.

Responsibilities:
- Campaign creation from an owned session (idempotent)
- Token-addressed respondent flow: join, chat, complete, feedback
- Aggregation over completed respondents, recomputed on every read
- AI cross-analysis stored as the owner session's campaign_analytics artifact
"""

import json
from datetime import datetime, timezone

import structlog
from fastapi import HTTPException
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deepform.agent.generator import Generator
from deepform.agent.prompts import CAMPAIGN_ANALYSIS_SYSTEM_PROMPT
from deepform.db.models.campaign import Campaign
from deepform.db.models.interview_session import InterviewSession
from deepform.db.models.stage_artifact import StageArtifact
from deepform.db.models.turn import Turn
from deepform.domain.aggregation import build_campaign_aggregate
from deepform.domain.language import lang_pack
from deepform.domain.lifecycle import SessionMode, SessionStatus, StageType, is_done
from deepform.domain.normalize import fallback_campaign_analysis, normalize_campaign_analysis
from deepform.services.artifact_store import ArtifactStore
from deepform.services.funnel import FunnelTracker
from deepform.services.interview_service import InterviewService
from deepform.services.stage_service import StageService, structure_output

logger = structlog.get_logger(__name__)

ANALYSIS_MAX_TOKENS = 4096


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


class CampaignService:
    """Service layer for campaigns and their respondents."""

    def __init__(
        self,
        generator: Generator,
        session_factory: async_sessionmaker[AsyncSession],
        funnel: FunnelTracker,
    ):
        self.generator = generator
        self.session_factory = session_factory
        self.funnel = funnel

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _by_token(self, db: AsyncSession, token: str) -> Campaign:
        result = await db.execute(select(Campaign).where(Campaign.share_token == token))
        campaign = result.scalar_one_or_none()
        if campaign is None:
            raise HTTPException(status_code=404, detail="Campaign not found")
        return campaign

    async def _owned(self, db: AsyncSession, campaign_id: str, clerk_user_id: str) -> Campaign:
        """Load a campaign whose owner session belongs to the caller.

        Raises:
            HTTPException(404): If the campaign does not exist
            HTTPException(403): If the owner session belongs to someone else
        """
        result = await db.execute(select(Campaign).where(Campaign.id == campaign_id))
        campaign = result.scalar_one_or_none()
        if campaign is None:
            raise HTTPException(status_code=404, detail="Campaign not found")

        owner = await ArtifactStore(db).get_session(campaign.owner_session_id)
        if owner is None or owner.clerk_user_id != clerk_user_id:
            raise HTTPException(status_code=403, detail="Access denied")
        return campaign

    async def resolve_respondent(self, token: str, session_id: str) -> str:
        """Check that ``session_id`` is a respondent of the campaign behind ``token``.

        Returns:
            The respondent session's status
        """
        async with self.session_factory() as db:
            campaign = await self._by_token(db, token)
            result = await db.execute(
                select(InterviewSession.status).where(
                    InterviewSession.id == session_id,
                    InterviewSession.campaign_id == campaign.id,
                )
            )
            status = result.scalar_one_or_none()
            if status is None:
                raise HTTPException(status_code=404, detail="Session not found")
        return status

    # ------------------------------------------------------------------
    # Campaign lifecycle
    # ------------------------------------------------------------------

    async def create(self, clerk_user_id: str, session_id: str) -> tuple[dict, bool]:
        """Create a campaign from an owned session.

        Returns:
            (campaign payload, created) where created is False when the session
            already had a campaign
        """
        async with self.session_factory() as db:
            owner = await ArtifactStore(db).get_owned_session(session_id, clerk_user_id)
            result = await db.execute(select(Campaign).where(Campaign.owner_session_id == owner.id))
            campaign = result.scalar_one_or_none()
            created = campaign is None
            if created:
                campaign = Campaign(theme=owner.theme, owner_session_id=owner.id)
                db.add(campaign)
                await db.commit()
                logger.info("campaign_created", campaign_id=campaign.id, owner_session_id=owner.id)

        return {"campaignId": campaign.id, "shareToken": campaign.share_token, "theme": campaign.theme}, created

    async def get_by_token(self, token: str) -> dict:
        """Campaign info with its respondents, newest first. Counts a page view."""
        async with self.session_factory() as db:
            campaign = await self._by_token(db, token)
            user_turns = (
                select(func.count())
                .select_from(Turn)
                .where(Turn.session_id == InterviewSession.id, Turn.role == "user")
                .scalar_subquery()
            )
            result = await db.execute(
                select(InterviewSession, user_turns)
                .where(InterviewSession.campaign_id == campaign.id)
                .order_by(InterviewSession.created_at.desc())
            )
            respondents = [
                {
                    "id": s.id,
                    "respondentName": s.respondent_name,
                    "status": s.status,
                    "createdAt": _isoformat(s.created_at),
                    "messageCount": count,
                }
                for s, count in result.all()
            ]

        await self.funnel.record(campaign.id, "pageViews")
        return {
            "campaignId": campaign.id,
            "theme": campaign.theme,
            "shareToken": campaign.share_token,
            "ownerSessionId": campaign.owner_session_id,
            "respondentCount": len(respondents),
            "respondents": respondents,
            "createdAt": _isoformat(campaign.created_at),
        }

    async def join(
        self, token: str, interviews: InterviewService, respondent_name: str | None = None, lang: str | None = None
    ) -> dict:
        """Create a respondent session and generate its opening question."""
        async with self.session_factory() as db:
            campaign = await self._by_token(db, token)
            respondent = InterviewSession(
                theme=campaign.theme,
                status=SessionStatus.INTERVIEWING.value,
                mode=SessionMode.CAMPAIGN_RESPONDENT.value,
                campaign_id=campaign.id,
                respondent_name=respondent_name or None,
            )
            db.add(respondent)
            await db.commit()

        await self.funnel.record(campaign.id, "sessionsCreated")
        logger.info("campaign_joined", campaign_id=campaign.id, session_id=respondent.id)

        pending = await interviews.begin_respondent_start(respondent.id, lang, respondent_name)
        opening = await interviews.reply(pending)
        return {
            "sessionId": respondent.id,
            "reply": opening["reply"],
            "choices": opening["choices"],
            "theme": campaign.theme,
        }

    async def complete_respondent(
        self, token: str, session_id: str, stages: StageService, lang: str | None = None
    ) -> dict:
        """Extract the respondent's facts and mark the session respondent_done.

        Raises:
            HTTPException(400): If the respondent already completed the interview
        """
        if is_done(await self.resolve_respondent(token, session_id)):
            raise HTTPException(status_code=400, detail="Interview already completed")
        facts = await stages.run(session_id, StageType.FACTS, lang, final_status=SessionStatus.RESPONDENT_DONE)

        async with self.session_factory() as db:
            campaign = await self._by_token(db, token)
            campaign.updated_at = datetime.now(timezone.utc)
            await db.commit()

        await self.funnel.record(campaign.id, "requirementsReached")
        return facts

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    async def _respondent_rows(self, db: AsyncSession, campaign_id: str) -> list[tuple[InterviewSession, dict | None]]:
        result = await db.execute(
            select(InterviewSession, StageArtifact.data)
            .outerjoin(
                StageArtifact,
                and_(
                    StageArtifact.session_id == InterviewSession.id,
                    StageArtifact.stage == StageType.FACTS.value,
                ),
            )
            .where(InterviewSession.campaign_id == campaign_id)
            .order_by(InterviewSession.created_at)
        )
        return list(result.all())

    @staticmethod
    def _completed_facts(rows: list[tuple[InterviewSession, dict | None]]) -> list[dict]:
        return [facts for s, facts in rows if is_done(s.status) and facts is not None]

    async def _aggregate(self, db: AsyncSession, campaign: Campaign, with_funnel: bool = True) -> dict:
        rows = await self._respondent_rows(db, campaign.id)
        funnel = await self.funnel.get_funnel(campaign.id) if with_funnel else None
        aggregate = build_campaign_aggregate(len(rows), self._completed_facts(rows), funnel)
        logger.info(
            "campaign_aggregated",
            campaign_id=campaign.id,
            total_sessions=aggregate["totalSessions"],
            completed_sessions=aggregate["completedSessions"],
        )
        return aggregate

    async def raw_facts(self, token: str, lang: str | None = None) -> dict:
        """Every completed respondent's facts, tagged with who said them."""
        anonymous = lang_pack(lang).anonymous
        async with self.session_factory() as db:
            campaign = await self._by_token(db, token)
            rows = await self._respondent_rows(db, campaign.id)

        respondents = []
        all_facts = []
        for s, data in rows:
            if not is_done(s.status):
                continue
            fact_list = data.get("facts", []) if isinstance(data, dict) else data or []
            name = s.respondent_name or anonymous
            respondents.append({
                "sessionId": s.id,
                "name": name,
                "factCount": len(fact_list),
                "feedback": s.respondent_feedback,
            })
            all_facts.extend({**fact, "respondent": name, "sessionId": s.id} for fact in fact_list)

        return {
            "campaignId": campaign.id,
            "theme": campaign.theme,
            "totalRespondents": len(respondents),
            "totalFacts": len(all_facts),
            "respondents": respondents,
            "allFacts": all_facts,
        }

    async def analytics(self, clerk_user_id: str, campaign_id: str) -> dict:
        async with self.session_factory() as db:
            campaign = await self._owned(db, campaign_id, clerk_user_id)
            return await self._aggregate(db, campaign)

    async def generate_analysis(self, clerk_user_id: str, campaign_id: str) -> dict:
        """Run the AI cross-analysis over the aggregate and store it.

        Raises:
            HTTPException(400): If no respondent has completed yet
            GenerationError: If the generative call fails
        """
        async with self.session_factory() as db:
            campaign = await self._owned(db, campaign_id, clerk_user_id)
            aggregate = await self._aggregate(db, campaign, with_funnel=False)

        if aggregate["completedSessions"] == 0:
            raise HTTPException(status_code=400, detail="No completed sessions")

        analysis_input = json.dumps(
            {
                "totalSessions": aggregate["totalSessions"],
                "completedSessions": aggregate["completedSessions"],
                "commonFacts": aggregate["commonFacts"][:30],
                "painPoints": aggregate["painPoints"][:20],
                "keywordCounts": aggregate["keywordCounts"],
            },
            ensure_ascii=False,
        )
        text = await self.generator.complete(
            CAMPAIGN_ANALYSIS_SYSTEM_PROMPT,
            [{"role": "user", "content": f"Analyze this cross-campaign data:\n\n{analysis_input}"}],
            max_tokens=ANALYSIS_MAX_TOKENS,
            purpose="campaign_analysis",
        )
        analysis = structure_output(
            text,
            normalize_campaign_analysis,
            fallback_campaign_analysis,
            stage=StageType.CAMPAIGN_ANALYTICS.value,
            campaign_id=campaign.id,
        )

        async with self.session_factory() as db:
            await ArtifactStore(db).upsert_artifact(campaign.owner_session_id, StageType.CAMPAIGN_ANALYTICS, analysis)
            await db.commit()

        logger.info("campaign_analysis_generated", campaign_id=campaign.id)
        return analysis

    async def export(self, clerk_user_id: str, campaign_id: str, lang: str | None = None) -> dict:
        """Aggregate, stored AI analysis and per-respondent details."""
        anonymous = lang_pack(lang).anonymous
        async with self.session_factory() as db:
            campaign = await self._owned(db, campaign_id, clerk_user_id)
            aggregate = await self._aggregate(db, campaign)
            ai_analysis = await ArtifactStore(db).get_artifact(
                campaign.owner_session_id, StageType.CAMPAIGN_ANALYTICS
            )
            rows = await self._respondent_rows(db, campaign.id)

        return {
            "campaign": {
                "id": campaign.id,
                "theme": campaign.theme,
                "createdAt": _isoformat(campaign.created_at),
                "exportedAt": datetime.now(timezone.utc).isoformat(),
            },
            "analytics": aggregate,
            "aiAnalysis": ai_analysis,
            "respondents": [
                {
                    "sessionId": s.id,
                    "name": s.respondent_name or anonymous,
                    "status": s.status,
                    "feedback": s.respondent_feedback,
                    "createdAt": _isoformat(s.created_at),
                    "facts": facts,
                }
                for s, facts in rows
            ],
        }
