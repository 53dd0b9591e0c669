"""Types for the coach creator agent: context, tool inputs and outputs, result."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from coach_agent.agent.context import AgentContext
from coach_agent.storage.records import CoachCreatorSession

GenderPreference = Literal["male", "female", "neutral"]
ExperienceLevel = Literal["beginner", "intermediate", "advanced"]


class CoachCreatorKey(str, Enum):
    """Semantic keys coach creator tool results are stored under."""

    REQUIREMENTS = "requirements"
    PERSONALITY_SELECTION = "personality_selection"
    METHODOLOGY_SELECTION = "methodology_selection"
    COACH_PROMPTS = "coach_prompts"
    ASSEMBLED_CONFIG = "assembled_config"
    VALIDATION = "validation"
    NORMALIZATION = "normalization"
    SAVE = "save"


COACH_CREATOR_KEY_MAP: dict[str, CoachCreatorKey] = {
    "load_session_requirements": CoachCreatorKey.REQUIREMENTS,
    "select_personality_template": CoachCreatorKey.PERSONALITY_SELECTION,
    "select_methodology_template": CoachCreatorKey.METHODOLOGY_SELECTION,
    "generate_coach_prompts": CoachCreatorKey.COACH_PROMPTS,
    "assemble_coach_config": CoachCreatorKey.ASSEMBLED_CONFIG,
    "validate_coach_config": CoachCreatorKey.VALIDATION,
    "normalize_coach_config": CoachCreatorKey.NORMALIZATION,
    "save_coach_config_to_database": CoachCreatorKey.SAVE,
}


@dataclass(kw_only=True)
class CoachCreatorContext(AgentContext):
    """Identity of the intake session a coach is being created from."""

    session_id: str


# ---------------------------------------------------------------------------
# Tool inputs
# ---------------------------------------------------------------------------


class LoadSessionRequirementsInput(BaseModel):
    user_id: str | None = Field(default=None, description="User ID. Defaults to the run's user.")
    session_id: str | None = Field(
        default=None, description="Coach creator session ID. Defaults to the run's session."
    )


class TemplateSelectionInput(BaseModel):
    focus_hint: str | None = Field(
        default=None, description="Optional note on what the selection should emphasise."
    )


class TimestampInput(BaseModel):
    creation_timestamp: str = Field(description="ISO timestamp used for every date in this creation.")


# ---------------------------------------------------------------------------
# Tool outputs
# ---------------------------------------------------------------------------


class SafetyProfile(BaseModel):
    injuries: list[str] = Field(default_factory=list)
    contraindications: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=lambda: ["basic"])
    modifications: list[str] = Field(default_factory=list)
    recovery_needs: list[str] = Field(default_factory=list)
    time_constraints: dict[str, Any] = Field(default_factory=dict)


class MethodologyPreferences(BaseModel):
    focus: list[str] = Field(default_factory=lambda: ["strength", "conditioning"])
    preferences: list[str] = Field(default_factory=list)
    avoidances: list[str] = Field(default_factory=list)
    experience: ExperienceLevel = "intermediate"


class SessionRequirements(BaseModel):
    """Everything extracted from an intake session that coach generation needs."""

    session: CoachCreatorSession
    safety_profile: SafetyProfile
    methodology_preferences: MethodologyPreferences
    gender_preference: GenderPreference = "neutral"
    training_frequency: int = 4
    goal_timeline: str = "6 months"
    preferred_intensity: str = "moderate"
    specializations: list[str] = Field(default_factory=list)
    experience_level: ExperienceLevel = "intermediate"
    session_summary: str = ""


class PersonalitySelection(BaseModel):
    primary_template: str
    secondary_influences: list[str] = Field(default_factory=list)
    selection_reasoning: str = "Default selection"
    blending_weights: dict[str, float] = Field(default_factory=lambda: {"primary": 0.7, "secondary": 0.3})
    template_data: dict[str, Any] = Field(default_factory=dict)


class MethodologySelection(BaseModel):
    primary_methodology: str
    methodology_reasoning: str = "Default selection"
    programming_emphasis: str = "balanced"
    periodization_approach: str = "linear"
    creativity_emphasis: str = "medium_variety"
    workout_innovation: str = "enabled"
    template_data: dict[str, Any] = Field(default_factory=dict)


class CoachPrompts(BaseModel):
    personality_prompt: str
    safety_integrated_prompt: str
    motivation_prompt: str
    methodology_prompt: str
    communication_style: str
    learning_adaptation_prompt: str
    gender_tone_prompt: str


class AssembledCoachConfig(BaseModel):
    coach_config: dict[str, Any]
    coach_id: str
    coach_name: str


class CoachConfigValidation(BaseModel):
    is_valid: bool
    should_normalize: bool = False
    confidence: float = 0.0
    validation_issues: list[str] = Field(default_factory=list)
    safety_validation: dict[str, Any] = Field(default_factory=dict)
    personality_coherence: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class CoachConfigNormalization(BaseModel):
    normalized_config: dict[str, Any]
    issues_fixed: int = 0
    normalization_summary: str = "No normalization needed"


class CoachConfigSave(BaseModel):
    success: bool
    coach_config_id: str
    coach_name: str
    vector_stored: bool = False
    vector_record_id: str | None = None


class CoachCreatorResult(BaseModel):
    """Outcome of one ``create_coach`` call."""

    success: bool
    skipped: bool = False
    reason: str | None = None
    coach_config_id: str | None = None
    coach_name: str | None = None
    primary_personality: str | None = None
    primary_methodology: str | None = None
    gender_preference: str | None = None
    generation_method: str | None = None
    vector_stored: bool | None = None
    vector_record_id: str | None = None
    validation_issues: list[str] | None = None
