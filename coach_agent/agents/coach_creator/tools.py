"""
Coach creator tools.

Each tool is one step of the creation workflow. Tools read the outputs of
earlier steps from the run's result store, so the model only passes small
arguments (ids, a timestamp, an optional hint).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from loguru import logger

from coach_agent.agent.tools.base import Tool
from coach_agent.agents.coach_creator import helpers
from coach_agent.agents.coach_creator.models import (
    AssembledCoachConfig,
    CoachConfigNormalization,
    CoachConfigSave,
    CoachConfigValidation,
    CoachCreatorContext,
    CoachCreatorKey,
    CoachPrompts,
    LoadSessionRequirementsInput,
    MethodologySelection,
    PersonalitySelection,
    SessionRequirements,
    TemplateSelectionInput,
    TimestampInput,
)
from coach_agent.agents.coach_creator.prompts import (
    coach_prompts_prompt,
    methodology_selection_prompt,
    personality_selection_prompt,
)
from coach_agent.agents.coach_creator.templates import (
    DEFAULT_METHODOLOGY,
    DEFAULT_PERSONALITY,
    METHODOLOGY_TEMPLATES,
    PERSONALITY_TEMPLATES,
)
from coach_agent.agents.llm import ask_json
from coach_agent.errors import SessionIncompleteError
from coach_agent.providers.base import LLMProvider
from coach_agent.storage.base import CoachConfigStore, CoachCreatorSessionStore, VectorStore

PROMPT_KEYS = tuple(CoachPrompts.model_fields)
MIN_PROMPT_LENGTH = 50


def _require(context: CoachCreatorContext, key: CoachCreatorKey, producer: str) -> Any:
    value = context.get_tool_result(key)
    if value is None:
        raise ValueError(f"No {key.value} result available - call {producer} first")
    return value


def _current_config(context: CoachCreatorContext) -> dict[str, Any]:
    """The normalized config when normalization ran, otherwise the assembled one."""
    normalization: CoachConfigNormalization | None = context.get_tool_result(CoachCreatorKey.NORMALIZATION)
    if normalization is not None:
        return normalization.normalized_config
    assembled: AssembledCoachConfig = _require(
        context, CoachCreatorKey.ASSEMBLED_CONFIG, "assemble_coach_config"
    )
    return assembled.coach_config


class LoadSessionRequirementsTool(Tool):
    """Load a completed intake session and extract what coach generation needs."""

    input_model = LoadSessionRequirementsInput

    def __init__(self, sessions: CoachCreatorSessionStore) -> None:
        self._sessions = sessions

    @property
    def name(self) -> str:
        return "load_session_requirements"

    @property
    def description(self) -> str:
        return (
            "Load all requirements needed for coach generation. ALWAYS CALL THIS FIRST. "
            "Loads the coach creator session and extracts the safety profile, methodology "
            "preferences, coach gender preference, training frequency, goal timeline, "
            "intensity preference, specializations and a session summary."
        )

    async def execute(self, params: dict[str, Any], context: CoachCreatorContext) -> SessionRequirements:
        args = self.parse_input(params)
        user_id = args.user_id or context.user_id
        session_id = args.session_id or context.session_id

        session = await self._sessions.get_session(user_id, session_id)
        if not session.is_complete:
            raise SessionIncompleteError(session_id)

        requirements = helpers.extract_session_requirements(session)
        logger.info(
            f"Session requirements loaded: gender={requirements.gender_preference}, "
            f"frequency={requirements.training_frequency}, experience={requirements.experience_level}, "
            f"messages={len(session.conversation_history)}"
        )
        return requirements


class SelectPersonalityTemplateTool(Tool):
    """Ask the utility model which personality template suits the user."""

    input_model = TemplateSelectionInput

    def __init__(self, provider: LLMProvider, model: str | None = None) -> None:
        self._provider = provider
        self._model = model

    @property
    def name(self) -> str:
        return "select_personality_template"

    @property
    def description(self) -> str:
        return (
            "Select the optimal personality template using AI analysis of the loaded requirements. "
            "Templates: emma (encouraging, beginners), marcus (technical, skill development), "
            "diana (elite performance, competitors), alex (lifestyle integration, busy people)."
        )

    async def execute(self, params: dict[str, Any], context: CoachCreatorContext) -> PersonalitySelection:
        args = self.parse_input(params)
        requirements: SessionRequirements = _require(
            context, CoachCreatorKey.REQUIREMENTS, "load_session_requirements"
        )

        result = await ask_json(
            self._provider,
            personality_selection_prompt(requirements, args.focus_hint),
            "Select the optimal personality template",
            model=self._model,
        )

        primary = result.get("primary_template")
        if primary not in PERSONALITY_TEMPLATES:
            logger.warning(f"Invalid personality template {primary!r}, defaulting to {DEFAULT_PERSONALITY}")
            primary = DEFAULT_PERSONALITY

        secondary = [t for t in result.get("secondary_influences") or [] if t in PERSONALITY_TEMPLATES and t != primary]
        selection = PersonalitySelection(
            primary_template=primary,
            secondary_influences=secondary,
            selection_reasoning=result.get("selection_reasoning") or "Default selection",
            blending_weights=result.get("blending_weights") or {"primary": 0.7, "secondary": 0.3},
            template_data=PERSONALITY_TEMPLATES[primary].to_dict(),
        )
        logger.info(f"Personality selected: {selection.primary_template} (secondary={selection.secondary_influences})")
        return selection


class SelectMethodologyTemplateTool(Tool):
    """Ask the utility model which training methodology suits the user."""

    input_model = TemplateSelectionInput

    def __init__(self, provider: LLMProvider, model: str | None = None) -> None:
        self._provider = provider
        self._model = model

    @property
    def name(self) -> str:
        return "select_methodology_template"

    @property
    def description(self) -> str:
        return (
            "Select the optimal training methodology using AI analysis of goals, experience, "
            "equipment and injuries. Methodologies: " + ", ".join(METHODOLOGY_TEMPLATES) + "."
        )

    async def execute(self, params: dict[str, Any], context: CoachCreatorContext) -> MethodologySelection:
        args = self.parse_input(params)
        requirements: SessionRequirements = _require(
            context, CoachCreatorKey.REQUIREMENTS, "load_session_requirements"
        )

        result = await ask_json(
            self._provider,
            methodology_selection_prompt(requirements, args.focus_hint),
            "Select the optimal methodology",
            model=self._model,
        )

        primary = result.get("primary_methodology")
        if primary not in METHODOLOGY_TEMPLATES:
            logger.warning(f"Invalid methodology {primary!r}, defaulting to {DEFAULT_METHODOLOGY}")
            primary = DEFAULT_METHODOLOGY

        selection = MethodologySelection(
            primary_methodology=primary,
            methodology_reasoning=result.get("methodology_reasoning") or "Default selection",
            programming_emphasis=result.get("programming_emphasis") or "balanced",
            periodization_approach=result.get("periodization_approach") or "linear",
            creativity_emphasis=result.get("creativity_emphasis") or "medium_variety",
            workout_innovation=result.get("workout_innovation") or "enabled",
            template_data=METHODOLOGY_TEMPLATES[primary].to_dict(),
        )
        logger.info(
            f"Methodology selected: {selection.primary_methodology} "
            f"(emphasis={selection.programming_emphasis}, periodization={selection.periodization_approach})"
        )
        return selection


class GenerateCoachPromptsTool(Tool):
    """Generate the seven coach prompts from the selections."""

    def __init__(self, provider: LLMProvider, model: str | None = None) -> None:
        self._provider = provider
        self._model = model

    @property
    def name(self) -> str:
        return "generate_coach_prompts"

    @property
    def description(self) -> str:
        return (
            "Generate all 7 coach prompts with AI: personality, safety-integrated, motivation, "
            "methodology, communication style, learning adaptation and gender tone. "
            "Call after both template selections."
        )

    async def execute(self, params: dict[str, Any], context: CoachCreatorContext) -> CoachPrompts:
        requirements: SessionRequirements = _require(
            context, CoachCreatorKey.REQUIREMENTS, "load_session_requirements"
        )
        personality: PersonalitySelection = _require(
            context, CoachCreatorKey.PERSONALITY_SELECTION, "select_personality_template"
        )
        methodology: MethodologySelection = _require(
            context, CoachCreatorKey.METHODOLOGY_SELECTION, "select_methodology_template"
        )

        result = await ask_json(
            self._provider,
            coach_prompts_prompt(requirements, personality, methodology),
            "Generate all coach prompts",
            model=self._model,
            max_tokens=8192,
            temperature=0.9,
        )

        for key in PROMPT_KEYS:
            value = result.get(key)
            if not isinstance(value, str) or len(value) < MIN_PROMPT_LENGTH:
                raise ValueError(f"Missing or too short prompt: {key}")

        prompts = CoachPrompts(**{key: result[key] for key in PROMPT_KEYS})
        logger.info(f"Coach prompts generated: personality_prompt={len(prompts.personality_prompt)} chars")
        return prompts


class AssembleCoachConfigTool(Tool):
    """Combine requirements, selections and prompts into a full coach config."""

    input_model = TimestampInput

    @property
    def name(self) -> str:
        return "assemble_coach_config"

    @property
    def description(self) -> str:
        return (
            "Assemble the complete coach configuration from the loaded requirements, both "
            "selections and the generated prompts. Generates the coach id, name and description, "
            "time and safety constraints, and modification capabilities."
        )

    async def execute(self, params: dict[str, Any], context: CoachCreatorContext) -> AssembledCoachConfig:
        args = self.parse_input(params)
        config = helpers.assemble_coach_config(
            context.user_id,
            _require(context, CoachCreatorKey.REQUIREMENTS, "load_session_requirements"),
            _require(context, CoachCreatorKey.PERSONALITY_SELECTION, "select_personality_template"),
            _require(context, CoachCreatorKey.METHODOLOGY_SELECTION, "select_methodology_template"),
            _require(context, CoachCreatorKey.COACH_PROMPTS, "generate_coach_prompts"),
            args.creation_timestamp,
        )
        logger.info(f"Coach config assembled: {config['coach_id']} ({config['coach_name']})")
        return AssembledCoachConfig(
            coach_config=config,
            coach_id=config["coach_id"],
            coach_name=config["coach_name"],
        )


class ValidateCoachConfigTool(Tool):
    """Check the current config for schema, safety, coherence and gender problems."""

    @property
    def name(self) -> str:
        return "validate_coach_config"

    @property
    def description(self) -> str:
        return (
            "Validate the assembled (or normalized) coach configuration: schema compliance, "
            "safety integration, personality coherence and gender preference. "
            "Returns is_valid, should_normalize, confidence and validation_issues. "
            "If is_valid is false the config cannot be saved."
        )

    async def execute(self, params: dict[str, Any], context: CoachCreatorContext) -> CoachConfigValidation:
        config = _current_config(context)
        requirements: SessionRequirements = _require(
            context, CoachCreatorKey.REQUIREMENTS, "load_session_requirements"
        )

        try:
            schema_errors = helpers.validate_schema(config)
            safety = helpers.validate_safety(config, requirements.safety_profile, requirements.experience_level)
            coherence = helpers.validate_personality_coherence(config)
        except (AttributeError, KeyError, TypeError) as e:
            logger.error(f"Coach config validation raised: {e}")
            return CoachConfigValidation(is_valid=False, error=str(e))

        gender_issues: list[str] = []
        actual_gender = config.get("gender_preference")
        if actual_gender and actual_gender != requirements.gender_preference:
            gender_issues.append(
                f"Gender mismatch: requested {requirements.gender_preference}, got {actual_gender}"
            )

        issues = [
            *schema_errors,
            *safety["issues"],
            *(coherence["conflicting_traits"] if coherence["consistency_score"] < 7 else []),
            *gender_issues,
        ]
        should_normalize = 0 < len(issues) < 5 and not any("Missing required field" in i for i in issues)

        confidence = 1.0
        confidence -= len(schema_errors) * 0.1
        confidence -= len(safety["issues"]) * 0.05
        confidence -= (10 - coherence["consistency_score"]) * 0.05
        confidence = max(0.0, min(1.0, confidence))

        validation = CoachConfigValidation(
            is_valid=not schema_errors and not gender_issues,
            should_normalize=should_normalize,
            confidence=round(confidence, 2),
            validation_issues=issues,
            safety_validation=safety,
            personality_coherence=coherence,
        )
        logger.info(
            f"Coach config validated: is_valid={validation.is_valid}, "
            f"should_normalize={should_normalize}, issues={len(issues)}"
        )
        return validation


class NormalizeCoachConfigTool(Tool):
    """Repair shape problems in the assembled config."""

    @property
    def name(self) -> str:
        return "normalize_coach_config"

    @property
    def description(self) -> str:
        return (
            "Normalize the coach configuration: coerce list fields, default an invalid "
            "experience level or training frequency and fill missing time constraints. "
            "ONLY CALL THIS IF validate_coach_config returned should_normalize=true."
        )

    async def execute(self, params: dict[str, Any], context: CoachCreatorContext) -> CoachConfigNormalization:
        normalized, fixes = helpers.normalize_coach_config(_current_config(context))
        summary = f"Fixed {len(fixes)} issues: {'; '.join(fixes)}" if fixes else "No normalization needed"
        logger.info(f"Coach config normalized: {summary}")
        return CoachConfigNormalization(
            normalized_config=normalized,
            issues_fixed=len(fixes),
            normalization_summary=summary,
        )


class SaveCoachConfigTool(Tool):
    """Persist the final config, index its summary and close the intake session."""

    input_model = TimestampInput

    def __init__(
        self,
        coach_configs: CoachConfigStore,
        sessions: CoachCreatorSessionStore,
        vectors: VectorStore | None = None,
    ) -> None:
        self._coach_configs = coach_configs
        self._sessions = sessions
        self._vectors = vectors

    @property
    def name(self) -> str:
        return "save_coach_config_to_database"

    @property
    def description(self) -> str:
        return (
            "Save the finalized coach config, index the session summary for search and mark the "
            "intake session COMPLETE. FINAL STEP: only call after validate_coach_config passed "
            "(and normalize_coach_config if it was needed). Never call it after a failed validation."
        )

    async def execute(self, params: dict[str, Any], context: CoachCreatorContext) -> CoachConfigSave:
        args = self.parse_input(params)
        timestamp = args.creation_timestamp
        requirements: SessionRequirements = _require(
            context, CoachCreatorKey.REQUIREMENTS, "load_session_requirements"
        )

        config = dict(_current_config(context))
        config["metadata"] = {
            **(config.get("metadata") or {}),
            "created_date": timestamp,
            "generation_method": "tool",
            "generation_timestamp": timestamp,
        }

        coach_id = await self._coach_configs.save_coach_config(context.user_id, config, timestamp)
        logger.info(f"Coach config saved: {coach_id}")

        vector_stored, vector_record_id = await self._index_summary(context, requirements, config, coach_id)

        completed_at = _parse_timestamp(timestamp)
        session = requirements.session.model_copy(
            update={
                "config_generation": {
                    "status": "COMPLETE",
                    "completed_at": timestamp,
                    "coach_config_id": coach_id,
                },
                "is_deleted": True,
                "last_activity": completed_at,
            }
        )
        await self._sessions.save_session(session)
        logger.info(f"Session {session.session_id} marked COMPLETE")

        return CoachConfigSave(
            success=True,
            coach_config_id=coach_id,
            coach_name=config.get("coach_name", ""),
            vector_stored=vector_stored,
            vector_record_id=vector_record_id,
        )

    async def _index_summary(
        self,
        context: CoachCreatorContext,
        requirements: SessionRequirements,
        config: dict[str, Any],
        coach_id: str,
    ) -> tuple[bool, str | None]:
        if self._vectors is None:
            return False, None

        technical = config.get("technical_config") or {}
        metadata = {
            "entity_type": "coach_creator",
            "record_type": "coach_creator_summary",
            "coach_id": coach_id,
            "coach_name": config.get("coach_name"),
            "session_id": requirements.session.session_id,
            "sophistication_level": requirements.session.sophistication_level,
            "selected_personality": (config.get("selected_personality") or {}).get("primary_template"),
            "selected_methodology": (config.get("selected_methodology") or {}).get("primary_methodology"),
            "experience_level": technical.get("experience_level"),
            "training_frequency": technical.get("training_frequency"),
            "programming_focus": technical.get("programming_focus"),
            "outcome": "coach_created",
        }
        try:
            record_id = await self._vectors.upsert(context.user_id, requirements.session_summary, metadata)
        except Exception as e:
            logger.warning(f"Vector indexing of session summary failed (non-blocking): {e}")
            return False, None
        return True, record_id


def _parse_timestamp(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Unparseable creation timestamp {value!r}, using current time")
        return datetime.now().astimezone()
