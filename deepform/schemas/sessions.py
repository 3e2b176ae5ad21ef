"""Pydantic schemas for session, dialogue and stage requests.

Field names follow the wire format (camelCase) through aliases.
"""

from pydantic import BaseModel, ConfigDict, Field

THEME_MAX_LENGTH = 500
MESSAGE_MAX_LENGTH = 5000
RESPONDENT_NAME_MAX_LENGTH = 100
FEEDBACK_MAX_LENGTH = 5000


class CreateSessionRequest(BaseModel):
    theme: str = Field(..., min_length=1, max_length=THEME_MAX_LENGTH, description="Problem theme to interview about")


class CreateSessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    theme: str


class LangRequest(BaseModel):
    """Base for bodies that only carry the interview language."""

    lang: str | None = Field(None, description="ja | en | es | zh; anything else falls back to ja")


class ChatRequest(LangRequest):
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)


class StartRequest(LangRequest):
    model_config = ConfigDict(populate_by_name=True)

    respondent_name: str | None = Field(None, alias="respondentName", max_length=RESPONDENT_NAME_MAX_LENGTH)


class FeedbackRequest(BaseModel):
    feedback: str | None = Field(None, max_length=FEEDBACK_MAX_LENGTH)


class ShareResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    share_token: str = Field(..., alias="shareToken")
    theme: str


class CampaignResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    campaign_id: str = Field(..., alias="campaignId")
    share_token: str = Field(..., alias="shareToken")
    theme: str
