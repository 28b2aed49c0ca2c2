"""
Host Backend using OpenAI Agents SDK.

The generative host is a narrative and classification oracle: given the
company profile as persona context and one user turn at a time, it returns
the host's next line, an echo of the selected bucket, a contradiction flag
and the answer options for the next turn. It never decides the score.

Supports both OpenAI and Azure OpenAI backends:
  - OpenAI: Set OPENAI_API_KEY
  - Azure OpenAI: Set AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_KEY, AZURE_OPENAI_DEPLOYMENT

Last Grunted: 10/15/2026
"""

import logging
import os
from typing import Any, Literal, Optional, Protocol

from agents import Agent, ModelSettings, OpenAIChatCompletionsModel, Runner
from openai import AsyncAzureOpenAI
from openai.types.shared import Reasoning
from pydantic import BaseModel, Field

from .config import DEFAULT_MODEL, DEFAULT_REASONING_EFFORT, HOST_NAME, SHOW_NAME
from .models import CompanyProfile, DEFAULT_OPTION_LABELS


__all__ = [
    "HostBackend",
    "HostConversation",
    "AgentHostBackend",
    "HostTurnOutput",
    "build_host_instructions",
    "OPENING_MESSAGE",
]


logger = logging.getLogger(__name__)


OPENING_MESSAGE = (
    "Start the show. Introduce the guest to the audience and ask the first "
    "opening question. Include the answer options."
)


# =============================================================================
# Capability Protocols
# =============================================================================

class HostConversation(Protocol):
    """One ongoing conversation with the host. Holds its own history."""

    async def send(self, message: str) -> Any:
        """Send one user turn and return the raw structured reply."""
        ...


class HostBackend(Protocol):
    """Factory for host conversations."""

    def is_configured(self) -> bool:
        """Whether credentials for the generative service are present."""
        ...

    def start(self, profile: CompanyProfile, labels: tuple[str, ...]) -> HostConversation:
        """Open a new conversation primed with the company's persona."""
        ...


# =============================================================================
# Structured Output Models for Agent
# =============================================================================

class HostOptions(BaseModel):
    """Answer options for the CEO's next turn, one per quality label."""
    good: str = Field(..., description="Clear, direct, credible, specific answer")
    ok: str = Field(..., description="Plausible but generic answer, light on detail")
    evasive: str = Field(..., description="Answer that dodges the question or spins")
    bad: str = Field(..., description="Damaging answer, or empty string when not requested")


class HostTurnOutput(BaseModel):
    """
    Structured output from the host agent.

    Used as the agent's output_type. Field names are snake_case; the
    normalizer accepts them alongside the camelCase names older hosts used.
    """
    text: str = Field(..., description="Spoken line on-air: short acknowledgement plus a question")
    category: Literal["good", "neutral", "evasive", "bad"] = Field(
        ...,
        description="Mirror of the option the CEO selected on the last turn",
    )
    is_contradiction: bool = Field(
        ...,
        description="True only if the CEO contradicted themselves or earlier claims",
    )
    sentiment: Literal["positive", "negative", "neutral"] = Field(
        ...,
        description="Tone of the spoken line",
    )
    reason: Optional[str] = Field(..., description="Short explanation (debug only)")
    options: HostOptions
    is_interview_over: bool = Field(..., description="Always false; the client ends the interview")


# =============================================================================
# Agent Instructions
# =============================================================================

_LABEL_GUIDE = {
    "good": "good: clear, direct, credible, specific",
    "ok": "ok: plausible but generic, light on detail",
    "evasive": "evasive: dodges the question, spins, avoids specifics",
    "bad": "bad: careless or damaging, the kind of answer that moves markets down",
}


def build_host_instructions(
    profile: CompanyProfile,
    labels: tuple[str, ...] = DEFAULT_OPTION_LABELS,
) -> str:
    """Build the host persona and ruleset for one company."""
    subject = f"the CEO of {profile.name}"
    industry = f" in {profile.industry}" if profile.industry.strip() else ""
    options_block = "\n".join(f"   - {_LABEL_GUIDE[label]}" for label in labels)
    unused = [label for label in _LABEL_GUIDE if label not in labels]
    unused_rule = (
        f"- Leave these options as empty strings: {', '.join(unused)}.\n" if unused else ""
    )

    return f"""You are {HOST_NAME}, a sharp, authoritative business journalist and host of the prime-time show "{SHOW_NAME}".

You are interviewing {subject}, a company{industry} whose mission is "{profile.mission}".

Your job: run a live, high-pressure interview. You ask questions. The CEO answers by choosing one of the prepared answers you generate.

## Guest identity
- Do NOT invent a personal name, gender, pronouns or personal descriptors for the guest.
- Refer to the guest only as "{subject}".

## Each turn
1) Your spoken line on-air: a short acknowledgement plus a question, usually under 35 words.
2) One answer option per quality label for the CEO to choose from:
{options_block}
- Each option is one sentence, short enough to fit on a button.
- The options are realistic ways a CEO might answer the SAME question, clearly different in quality.
{unused_rule}
## Classification
- "category" mirrors the option the CEO selected on the last turn ("ok" is reported as "neutral").
  Do NOT substitute your own judgement. On the opening turn use "neutral".
- "is_contradiction" is true only if the CEO contradicts themselves or earlier claims.
- "sentiment" matches the tone of "text".
- "is_interview_over" is always false. The show ends the interview.

## Style
Professional. Controlled. Direct. Apply pressure through clarity, not hostility.
If the last answer was evasive, ask a tighter follow-up. If it was good, move forward."""


# =============================================================================
# OpenAI Configuration
# =============================================================================

def _get_openai_config(model: Optional[str]) -> tuple[str, Optional[AsyncAzureOpenAI]]:
    """
    Determine OpenAI configuration based on environment variables.

    Returns:
        Tuple of (model_name, azure_client_or_none)

    Azure OpenAI requires:
        - AZURE_OPENAI_ENDPOINT: The endpoint URL
        - AZURE_OPENAI_KEY: The API key
        - AZURE_OPENAI_DEPLOYMENT: The deployment name (used as model)
    """
    azure_endpoint = os.environ.get("AZURE_OPENAI_ENDPOINT")
    azure_key = os.environ.get("AZURE_OPENAI_KEY")
    azure_deployment = os.environ.get("AZURE_OPENAI_DEPLOYMENT")
    api_type = os.environ.get("OPENAI_API_TYPE", "").lower()

    if api_type == "azure" or (azure_endpoint and azure_key and azure_deployment):
        if not all([azure_endpoint, azure_key, azure_deployment]):
            raise ValueError(
                "Azure OpenAI requires AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_KEY, "
                "and AZURE_OPENAI_DEPLOYMENT environment variables"
            )
        logger.info("Using Azure OpenAI: %s, deployment: %s", azure_endpoint, azure_deployment)
        azure_client = AsyncAzureOpenAI(
            azure_endpoint=azure_endpoint,
            api_key=azure_key,
            api_version=os.environ.get("AZURE_OPENAI_API_VERSION", "2024-08-01-preview"),
        )
        return azure_deployment, azure_client

    resolved = model or os.environ.get("OPENAI_MODEL", DEFAULT_MODEL)
    logger.info("Using OpenAI: model %s", resolved)
    return resolved, None


def _supports_reasoning(model: str) -> bool:
    lowered = model.lower()
    return "gpt-5" in lowered or "o1" in lowered or "o3" in lowered


# =============================================================================
# Agent Backend
# =============================================================================

class AgentConversation:
    """
    Conversation with one host agent.

    History is carried between turns with RunResult.to_input_list(), so each
    call sends the full exchange so far plus the new user turn.
    """

    def __init__(self, agent: Agent) -> None:
        self._agent = agent
        self._history: list[Any] = []

    async def send(self, message: str) -> dict[str, Any]:
        run_input = self._history + [{"role": "user", "content": message}]
        result = await Runner.run(self._agent, run_input)
        self._history = result.to_input_list()
        output: HostTurnOutput = result.final_output_as(HostTurnOutput)
        return output.model_dump(mode="json")


class AgentHostBackend:
    """
    Generative host built on the OpenAI Agents SDK.

    Args:
        model: Model/deployment to use. If None, uses AZURE_OPENAI_DEPLOYMENT
               for Azure or OPENAI_MODEL for standard OpenAI.
        reasoning_effort: Reasoning effort for reasoning models ("low",
                          "medium", "high").
        azure_client: Optional explicit Azure OpenAI client.

    Example:
        >>> backend = AgentHostBackend()
        >>> conversation = backend.start(profile, ("good", "ok", "evasive"))
        >>> raw = await conversation.send(OPENING_MESSAGE)
    """

    def __init__(
        self,
        model: Optional[str] = None,
        reasoning_effort: Optional[str] = None,
        azure_client: Optional[AsyncAzureOpenAI] = None,
    ) -> None:
        if azure_client is not None:
            self.model = model or os.environ.get("AZURE_OPENAI_DEPLOYMENT", DEFAULT_MODEL)
            self._azure_client: Optional[AsyncAzureOpenAI] = azure_client
        else:
            self.model, self._azure_client = _get_openai_config(model)
        self.reasoning_effort = reasoning_effort or DEFAULT_REASONING_EFFORT

        if not self.is_configured():
            logger.warning(
                "No OpenAI credentials configured. Set either OPENAI_API_KEY or "
                "AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_KEY, AZURE_OPENAI_DEPLOYMENT. "
                "Host turns will fail at runtime."
            )

        self._model_settings = (
            ModelSettings(reasoning=Reasoning(effort=self.reasoning_effort))
            if _supports_reasoning(self.model)
            else ModelSettings()
        )

        provider = "Azure OpenAI" if self._azure_client else "OpenAI"
        logger.info("AgentHostBackend initialized with %s, model: %s", provider, self.model)

    def is_configured(self) -> bool:
        return self._azure_client is not None or bool(os.environ.get("OPENAI_API_KEY"))

    def start(
        self,
        profile: CompanyProfile,
        labels: tuple[str, ...] = DEFAULT_OPTION_LABELS,
    ) -> AgentConversation:
        model: Any = self.model
        if self._azure_client is not None:
            model = OpenAIChatCompletionsModel(model=self.model, openai_client=self._azure_client)

        agent = Agent(
            name="Hot Seat Host",
            instructions=build_host_instructions(profile, labels),
            model=model,
            output_type=HostTurnOutput,
            model_settings=self._model_settings,
        )
        return AgentConversation(agent)
