"""Campaign routes.

Token-addressed routes (``/campaigns/{token}/...``) serve respondents and need
no login. Id-addressed analytics routes are restricted to the owner of the
session the campaign was created from.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from deepform.agent.generator import Generator
from deepform.api.deps import dialogue_response, get_funnel, get_generator
from deepform.core.auth import ClerkUser, require_auth
from deepform.core.exceptions import GenerationError
from deepform.db.base import get_session_factory
from deepform.schemas.sessions import CampaignResponse, ChatRequest, FeedbackRequest, LangRequest, StartRequest
from deepform.services.campaign_service import CampaignService
from deepform.services.funnel import FunnelTracker
from deepform.services.interview_service import InterviewService
from deepform.services.session_service import SessionService
from deepform.services.stage_service import StageService

router = APIRouter()


def _service(generator: Generator, funnel: FunnelTracker) -> CampaignService:
    return CampaignService(generator, get_session_factory(), funnel)


@router.post("/sessions/{session_id}/campaign", response_model=CampaignResponse)
async def create_campaign(
    session_id: str,
    response: Response,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    """Create a campaign from an owned session; returns the existing one if present."""
    payload, created = await _service(generator, funnel).create(user.user_id, session_id)
    if created:
        response.status_code = 201
    return payload


@router.get("/campaigns/{token}")
async def get_campaign(
    token: str,
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    return await _service(generator, funnel).get_by_token(token)


@router.post("/campaigns/{token}/join", status_code=201)
async def join_campaign(
    token: str,
    body: StartRequest | None = None,
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    """Create a respondent session and return its opening question."""
    body = body or StartRequest()
    interviews = InterviewService(generator, get_session_factory(), funnel)
    try:
        return await _service(generator, funnel).join(token, interviews, body.respondent_name, body.lang)
    except GenerationError:
        raise HTTPException(status_code=500, detail="Generation failed")


@router.post("/campaigns/{token}/sessions/{session_id}/chat")
async def campaign_chat(
    token: str,
    session_id: str,
    body: ChatRequest,
    request: Request,
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    await _service(generator, funnel).resolve_respondent(token, session_id)
    interviews = InterviewService(generator, get_session_factory(), funnel)
    pending = await interviews.begin_respondent_chat(session_id, body.message, body.lang)
    return await dialogue_response(request, interviews, pending)


@router.post("/campaigns/{token}/sessions/{session_id}/complete")
async def campaign_complete(
    token: str,
    session_id: str,
    body: LangRequest | None = None,
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    """Extract the respondent's facts and close their interview."""
    stages = StageService(generator, get_session_factory())
    try:
        return await _service(generator, funnel).complete_respondent(
            token, session_id, stages, body.lang if body else None
        )
    except GenerationError:
        raise HTTPException(status_code=500, detail="Generation failed")


@router.post("/campaigns/{token}/sessions/{session_id}/feedback")
async def campaign_feedback(
    token: str,
    session_id: str,
    body: FeedbackRequest,
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    await _service(generator, funnel).resolve_respondent(token, session_id)
    return await SessionService(get_session_factory()).save_feedback(session_id, body.feedback)


@router.get("/campaigns/{token}/aggregate")
async def campaign_aggregate(
    token: str,
    lang: str | None = None,
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    """Raw facts of every completed respondent."""
    return await _service(generator, funnel).raw_facts(token, lang)


@router.get("/campaigns/{campaign_id}/analytics")
async def campaign_analytics(
    campaign_id: str,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    """Cross-respondent aggregate plus funnel counts, recomputed on every call."""
    return await _service(generator, funnel).analytics(user.user_id, campaign_id)


@router.post("/campaigns/{campaign_id}/analytics/generate")
async def generate_campaign_analysis(
    campaign_id: str,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    """Run the AI cross-analysis and store it on the owner session.

    Raises:
        HTTPException(400): If no respondent has completed
        HTTPException(500): If generation fails
    """
    try:
        return await _service(generator, funnel).generate_analysis(user.user_id, campaign_id)
    except GenerationError:
        raise HTTPException(status_code=500, detail="Generation failed")


@router.get("/campaigns/{campaign_id}/export")
async def export_campaign(
    campaign_id: str,
    lang: str | None = None,
    user: ClerkUser = Depends(require_auth),
    generator: Generator = Depends(get_generator),
    funnel: FunnelTracker = Depends(get_funnel),
):
    bundle = await _service(generator, funnel).export(user.user_id, campaign_id, lang)
    return JSONResponse(
        content=bundle,
        headers={"Content-Disposition": f'attachment; filename="campaign-{campaign_id}-analytics.json"'},
    )
