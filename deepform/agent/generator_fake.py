"""GeneratorFake: Scenario-based test double for the Generator protocol.

Provides deterministic, instant responses for named scenarios:
- happy_path: Well-formed JSON for every stage, interview replies with choices
- malformed: Interview replies work, stage calls return prose with no JSON
- no_sentinel: Like happy_path, but interview replies never carry a marker
- llm_failure: Every call raises GenerationError

``fail_on`` makes only the listed purposes fail, which lets tests halt the
pipeline at a chosen stage.
"""

import json
from collections.abc import AsyncIterator

from deepform.core.exceptions import GenerationError
from deepform.domain.readiness import COMPLETE_SENTINEL, READY_SENTINEL

_CHUNK_SIZE = 8

_INTERVIEW_PURPOSES = {"start", "chat", "respondent_start", "respondent_chat"}

MALFORMED_TEXT = "Sorry, I could not organize this into the requested structure."

FAKE_FACTS = {
    "facts": [
        {
            "id": "F1",
            "type": "pain",
            "content": "invoices take too long",
            "evidence": "It takes me a whole evening to get invoices out.",
            "severity": "high",
        },
        {
            "id": "F2",
            "type": "frequency",
            "content": "invoices are sent every week",
            "evidence": "I invoice every Friday.",
            "severity": "medium",
        },
        {
            "id": "F3",
            "type": "workaround",
            "content": "uses a spreadsheet template",
            "evidence": "I copy last week's spreadsheet and edit it.",
            "severity": "low",
        },
    ]
}

FAKE_HYPOTHESES = {
    "hypotheses": [
        {
            "id": "H1",
            "title": "Invoice preparation is the bottleneck",
            "description": "Freelancers lose billable time assembling invoices by hand.",
            "supportingFacts": ["F1", "F3"],
            "counterEvidence": "Some freelancers may invoice rarely enough not to care.",
            "unverifiedPoints": ["How long a single invoice takes"],
        },
        {
            "id": "H2",
            "title": "Weekly cadence makes automation worthwhile",
            "description": "A weekly invoicing rhythm repeats the same manual steps.",
            "supportingFacts": ["F2"],
            "counterEvidence": "Monthly invoicers see less benefit.",
            "unverifiedPoints": ["Share of freelancers invoicing weekly"],
        },
    ]
}

FAKE_REQUIREMENTS = {
    "prd": {
        "problemDefinition": "Freelancers spend an evening each week preparing invoices by hand.",
        "targetUser": "Solo freelancers billing several clients weekly",
        "jobsToBeDone": ["Send accurate invoices in minutes"],
        "coreFeatures": [
            {
                "name": "Invoice from template",
                "description": "Create an invoice prefilled from the previous one.",
                "priority": "must",
                "acceptanceCriteria": ["Invoice is saved to the database and listed"],
                "edgeCases": ["Empty line items show a validation error"],
            }
        ],
        "nonGoals": ["Tax filing"],
        "userFlows": [{"name": "Weekly invoicing", "steps": ["Open last invoice", "Adjust hours", "Send"]}],
        "qualityRequirements": {
            "performanceEfficiency": {"description": "Fast saves", "criteria": ["p95 save under 2s"]},
            "security": {"description": "Client data is private", "criteria": ["All input validated server-side"]},
        },
        "metrics": [{"name": "Time to invoice", "definition": "Open to send", "target": "Under 5 minutes"}],
    }
}

FAKE_SPECIFICATION = {
    "spec": {
        "projectName": "quick-invoice",
        "techStack": {"frontend": "React", "backend": "FastAPI", "database": "PostgreSQL"},
        "apiEndpoints": [{"method": "POST", "path": "/api/invoices", "description": "Create invoice"}],
        "dbSchema": "CREATE TABLE invoices (id uuid primary key, client text, total numeric);",
        "screens": [{"name": "Invoices", "path": "/", "description": "List and create invoices"}],
        "testCases": [{"name": "Create", "given": "A client", "when": "Invoice saved", "then": "It is listed"}],
    }
}

FAKE_READINESS = {
    "readiness": {
        "categories": [
            {
                "id": "security",
                "label": "Security",
                "items": [
                    {"id": "SE-1", "description": "Input validated server-side", "priority": "must", "rationale": "Client data"},
                ],
            },
            {
                "id": "reliability",
                "items": [{"description": "Daily database backups", "priority": "should"}],
            },
        ]
    }
}

FAKE_CAMPAIGN_ANALYSIS = {
    "summary": "Respondents consistently find invoicing slow.",
    "patterns": [
        {"id": "P1", "title": "Slow invoicing", "description": "Manual invoices", "frequency": "3/3", "severity": "high"},
    ],
    "insights": [{"id": "I1", "content": "Templates are the common workaround", "supportingPatterns": ["P1"]}],
    "recommendations": ["Prototype invoice-from-template"],
}

_STAGE_PAYLOADS = {
    "facts": FAKE_FACTS,
    "hypotheses": FAKE_HYPOTHESES,
    "requirements": FAKE_REQUIREMENTS,
    "specification": FAKE_SPECIFICATION,
    "readiness": FAKE_READINESS,
    "campaign_analysis": FAKE_CAMPAIGN_ANALYSIS,
}

OPENING_QUESTION = "Could you tell me how you handle this today?"
FOLLOW_UP_QUESTION = "Can you tell me about the last time that happened, and how often it comes up?"
FAKE_CHOICES = ["Every week", "Every month", "Other (type your own)"]


class GeneratorFake:
    """Scenario-based test double for the Generator protocol."""

    VALID_SCENARIOS = {"happy_path", "malformed", "no_sentinel", "llm_failure"}

    def __init__(self, scenario: str = "happy_path", fail_on: set[str] | None = None):
        """Initialize GeneratorFake with a named scenario.

        Args:
            scenario: One of 'happy_path', 'malformed', 'no_sentinel', 'llm_failure'
            fail_on: Purposes that raise GenerationError regardless of scenario

        Raises:
            ValueError: If scenario is not recognized
        """
        if scenario not in self.VALID_SCENARIOS:
            raise ValueError(f"Unknown scenario: {scenario}. Valid scenarios: {self.VALID_SCENARIOS}")
        self.scenario = scenario
        self.fail_on = set(fail_on or ())
        self.calls: list[dict] = []

    def _reply(self, system: str, messages: list[dict], purpose: str) -> str:
        self.calls.append({"purpose": purpose, "system": system, "messages": messages})

        if self.scenario == "llm_failure" or purpose in self.fail_on:
            raise GenerationError("Anthropic API rate limit exceeded. Retry after 60 seconds.")

        if purpose in _INTERVIEW_PURPOSES:
            return self._interview_reply(system, purpose)

        if self.scenario == "malformed":
            return MALFORMED_TEXT

        payload = _STAGE_PAYLOADS.get(purpose, {})
        return "Here is the result:\n```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"

    def _interview_reply(self, system: str, purpose: str) -> str:
        question = OPENING_QUESTION if purpose.endswith("start") else FOLLOW_UP_QUESTION
        if self.scenario != "no_sentinel":
            # Emit a marker only when the system prompt invites one
            for sentinel in (READY_SENTINEL, COMPLETE_SENTINEL):
                if sentinel in system:
                    question = f"{question} {sentinel}"
        choices = "\n".join(FAKE_CHOICES)
        return f"{question}\n\n[CHOICES]\n{choices}\n[/CHOICES]"

    async def complete(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 4096,
        purpose: str = "completion",
    ) -> str:
        return self._reply(system, messages, purpose)

    async def stream(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 1024,
        purpose: str = "chat",
    ) -> AsyncIterator[str]:
        text = self._reply(system, messages, purpose)
        for start in range(0, len(text), _CHUNK_SIZE):
            yield text[start : start + _CHUNK_SIZE]
