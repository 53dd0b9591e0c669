"""CoachCreatorAgent - builds a coach config from a completed intake session."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from coach_agent.agent.loop import Agent, AgentConfig
from coach_agent.agent.policies import ClarifyingQuestionRetry, ValidationGate
from coach_agent.agent.tools.base import Tool
from coach_agent.agents.coach_creator.models import (
    COACH_CREATOR_KEY_MAP,
    AssembledCoachConfig,
    CoachConfigSave,
    CoachConfigValidation,
    CoachCreatorContext,
    CoachCreatorKey,
    CoachCreatorResult,
    MethodologySelection,
    PersonalitySelection,
    SessionRequirements,
)
from coach_agent.agents.coach_creator.prompts import (
    build_coach_creator_prompt,
    build_dynamic_prompt,
    build_retry_prompt,
)
from coach_agent.agents.coach_creator.tools import (
    AssembleCoachConfigTool,
    GenerateCoachPromptsTool,
    LoadSessionRequirementsTool,
    NormalizeCoachConfigTool,
    SaveCoachConfigTool,
    SelectMethodologyTemplateTool,
    SelectPersonalityTemplateTool,
    ValidateCoachConfigTool,
)
from coach_agent.config.schema import Config
from coach_agent.providers.base import LLMProvider
from coach_agent.storage import Stores
from coach_agent.storage.base import CoachConfigStore, CoachCreatorSessionStore, VectorStore

SAVE_TOOL = "save_coach_config_to_database"
TEMPLATE_SELECTION_GROUP = frozenset({"select_personality_template", "select_methodology_template"})


@dataclass
class CoachCreatorSettings:
    """Collaborators and tuning for coach creation runs."""

    sessions: CoachCreatorSessionStore
    coach_configs: CoachConfigStore
    vectors: VectorStore | None = None
    model: str | None = None
    utility_model: str | None = None
    max_iterations: int = 20
    max_tokens: int = 32768
    temperature: float = 0.7
    min_required_tools: int = 5
    parallel_template_selection: bool = True

    @classmethod
    def from_config(cls, config: Config, stores: Stores) -> CoachCreatorSettings:
        defaults = config.agents.defaults
        return cls(
            sessions=stores.sessions,
            coach_configs=stores.coach_configs,
            vectors=stores.vectors,
            model=defaults.model,
            utility_model=defaults.utility_model,
            max_iterations=defaults.max_tool_iterations,
            max_tokens=defaults.max_tokens,
            temperature=defaults.temperature,
            min_required_tools=config.coach_creator.min_required_tools,
            parallel_template_selection=config.coach_creator.parallel_template_selection,
        )


def build_coach_creator_tools(provider: LLMProvider, settings: CoachCreatorSettings) -> list[Tool]:
    """The eight workflow tools, in workflow order."""
    utility_model = settings.utility_model or settings.model
    return [
        LoadSessionRequirementsTool(settings.sessions),
        SelectPersonalityTemplateTool(provider, utility_model),
        SelectMethodologyTemplateTool(provider, utility_model),
        GenerateCoachPromptsTool(provider, utility_model),
        AssembleCoachConfigTool(),
        ValidateCoachConfigTool(),
        NormalizeCoachConfigTool(),
        SaveCoachConfigTool(settings.coach_configs, settings.sessions, settings.vectors),
    ]


class CoachCreatorAgent:
    """
    Creates a coach from an intake session with a tool-driven agent run.

    The save tool is gated on the latest validation result, and a run that
    stalls on a clarifying question is retried once with a stronger prompt.
    """

    CREATE_MESSAGE = "Create a personalized AI fitness coach for this user. Use timestamp: {timestamp}"

    def __init__(
        self,
        provider: LLMProvider,
        context: CoachCreatorContext,
        settings: CoachCreatorSettings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.context = context
        self.settings = settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        config = AgentConfig(
            system_prompt=build_coach_creator_prompt(),
            dynamic_prompt=build_dynamic_prompt(context, self._clock().isoformat()),
            tools=build_coach_creator_tools(provider, settings),
            model=settings.model,
            max_iterations=settings.max_iterations,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            blocking_policy=ValidationGate(SAVE_TOOL, CoachCreatorKey.VALIDATION.value),
            retry_policy=ClarifyingQuestionRetry(
                min_required_tools=settings.min_required_tools,
                build_prompt=build_retry_prompt,
                clock=self._clock,
            ),
            parallel_groups=[TEMPLATE_SELECTION_GROUP] if settings.parallel_template_selection else [],
            key_map=COACH_CREATOR_KEY_MAP,
        )
        self.agent: Agent[CoachCreatorContext] = Agent(provider, config, context)

    @property
    def tool_results(self):
        return self.agent.tool_results

    async def create_coach(self) -> CoachCreatorResult:
        """
        Run the creation workflow once, plus at most one retry.

        Returns:
            The creation outcome. Errors are reported as a skipped result,
            never raised.
        """
        timestamp = self._clock().isoformat()
        logger.info(f"Creating coach: user={self.context.user_id}, session={self.context.session_id}")

        try:
            response = await self.agent.converse(self.CREATE_MESSAGE.format(timestamp=timestamp))
            result = self.build_result(response)

            decision = self.agent.should_retry_workflow(result, response)
            if decision is None or not decision.should_retry:
                return result

            # Stored results are kept: steps marked done may be skipped by the model.
            logger.warning(decision.log_message)
            retry_response = await self.agent.converse(decision.retry_prompt)
            retry_result = self.build_result(retry_response)
            if not retry_result.success and retry_result.skipped:
                logger.warning("Retry also resulted in skip - using original result")
                return result
            return retry_result
        except Exception as e:
            logger.error(f"Coach creation failed: {e}")
            return CoachCreatorResult(success=False, skipped=True, reason=str(e) or "Unknown error occurred")

    def build_result(self, agent_response: str) -> CoachCreatorResult:
        """Turn the stored tool results and the final text into a creation outcome."""
        results = self.agent.tool_results
        save: CoachConfigSave | None = results.get(CoachCreatorKey.SAVE)
        validation: CoachConfigValidation | None = results.get(CoachCreatorKey.VALIDATION)
        requirements: SessionRequirements | None = results.get(CoachCreatorKey.REQUIREMENTS)
        personality: PersonalitySelection | None = results.get(CoachCreatorKey.PERSONALITY_SELECTION)
        methodology: MethodologySelection | None = results.get(CoachCreatorKey.METHODOLOGY_SELECTION)

        if save is not None and save.success and save.coach_config_id:
            logger.info(f"Coach created: {save.coach_config_id} ({save.coach_name})")
            return CoachCreatorResult(
                success=True,
                coach_config_id=save.coach_config_id,
                coach_name=save.coach_name,
                primary_personality=personality.primary_template if personality else None,
                primary_methodology=methodology.primary_methodology if methodology else None,
                gender_preference=requirements.gender_preference if requirements else None,
                generation_method="tool",
                vector_stored=save.vector_stored,
                vector_record_id=save.vector_record_id,
            )

        if validation is not None and not validation.is_valid:
            issues = list(validation.validation_issues)
            if validation.error:
                issues.append(validation.error)
            logger.warning(f"Coach validation failed with {len(issues)} issue(s)")
            return CoachCreatorResult(
                success=False,
                skipped=True,
                reason=f"Coach validation failed: {', '.join(issues) or 'Unknown issues'}",
                validation_issues=issues,
            )

        if len(results) == 0:
            logger.warning("Agent workflow incomplete: no tools called")
            return CoachCreatorResult(
                success=False,
                skipped=True,
                reason=agent_response or "Agent workflow incomplete - no tools called",
            )

        assembled: AssembledCoachConfig | None = results.get(CoachCreatorKey.ASSEMBLED_CONFIG)
        logger.warning(
            f"Partial workflow: {results.keys()} stored"
            + (f", assembled {assembled.coach_id} not saved" if assembled else "")
        )
        return CoachCreatorResult(
            success=False,
            skipped=True,
            reason=agent_response or "Workflow incomplete - coach was not saved to database",
        )
