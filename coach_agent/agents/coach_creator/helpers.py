"""Session extraction, config assembly, validation and normalization for coach creation."""

from __future__ import annotations

import copy
import re
import time
from datetime import datetime
from typing import Any

from coach_agent.agents.coach_creator.models import (
    CoachPrompts,
    MethodologyPreferences,
    MethodologySelection,
    PersonalitySelection,
    SafetyProfile,
    SessionRequirements,
)
from coach_agent.agents.coach_creator.templates import (
    COACH_MODIFICATION_OPTIONS,
    EMMA,
    METHODOLOGY_TEMPLATES,
    PERSONALITY_TEMPLATES,
    critical_safety_rule_ids,
)
from coach_agent.storage.records import CoachCreatorSession

VALID_EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced")
VALID_GENDERS = ("male", "female", "neutral")
DEFAULT_TRAINING_FREQUENCY = 4
DEFAULT_GOAL_TIMELINE = "6 months"
DEFAULT_TIME_CONSTRAINTS = {
    "preferred_time": "flexible",
    "session_duration": "45-60 minutes",
}

REQUIRED_CONFIG_FIELDS = (
    "coach_id",
    "coach_name",
    "selected_personality",
    "selected_methodology",
    "technical_config",
    "generated_prompts",
    "modification_capabilities",
    "metadata",
)

ARRAY_FIELDS = (
    "technical_config.programming_focus",
    "technical_config.specializations",
    "technical_config.injury_considerations",
    "technical_config.equipment_available",
    "technical_config.safety_constraints.contraindicated_exercises",
    "technical_config.safety_constraints.required_modifications",
    "technical_config.safety_constraints.recovery_requirements",
    "technical_config.safety_constraints.safety_monitoring",
    "modification_capabilities.enabled_modifications",
)

_FOCUS_KEYWORDS: dict[str, tuple[str, ...]] = {
    "strength": ("strength", "stronger", "squat", "deadlift", "bench", "lifting heavy"),
    "conditioning": ("conditioning", "cardio", "endurance", "engine", "metcon", "stamina"),
    "olympic lifting": ("olympic", "snatch", "clean and jerk", "clean & jerk"),
    "gymnastics": ("gymnastic", "muscle-up", "muscle up", "handstand", "pull-up", "pull up"),
    "hypertrophy": ("build muscle", "hypertrophy", "bodybuilding", "aesthetic"),
    "mobility": ("mobility", "flexibility"),
    "body composition": ("weight loss", "lose weight", "fat loss", "lean out"),
}

_SPECIALIZATION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Olympic Weightlifting": ("olympic", "snatch", "clean and jerk", "clean & jerk"),
    "Powerlifting": ("powerlifting", "powerlifter", "1rm", "one rep max"),
    "Gymnastics": ("gymnastic", "muscle-up", "muscle up", "handstand"),
    "Endurance": ("endurance", "marathon", "running", "triathlon", "rowing"),
    "Strength Training": ("strength",),
    "CrossFit": ("crossfit",),
    "Bodybuilding": ("bodybuilding", "hypertrophy", "physique"),
}

_HIGH_INTENSITY_MARKERS = ("compet", "intense", "high intensity", "push hard", "max effort", "games")
_LOW_INTENSITY_MARKERS = ("gentle", "low impact", "easy", "rehab", "recover", "ease back")

_NONE_VALUES = {"", "none", "n/a", "na", "no", "nothing"}


def _as_list(value: Any) -> list[str]:
    """Coerce an intake answer into a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(v).strip() for v in value]
    else:
        items = [part.strip() for part in re.split(r"[,;\n]", str(value))]
    return [item for item in items if item and item.lower() not in _NONE_VALUES]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _matches(text: str, keywords: dict[str, tuple[str, ...]]) -> list[str]:
    lowered = text.lower()
    return [label for label, markers in keywords.items() if any(m in lowered for m in markers)]


# ---------------------------------------------------------------------------
# Session extraction
# ---------------------------------------------------------------------------


def get_experience_level(session: CoachCreatorSession) -> str:
    """
    Resolve the user's experience level.

    The intake answer wins, then the session's sophistication level, then
    ``intermediate``.
    """
    answer = _text(session.todo_value("experience_level")).strip().lower()
    if answer in VALID_EXPERIENCE_LEVELS:
        return answer
    sophistication = (session.sophistication_level or "").lower()
    if sophistication in VALID_EXPERIENCE_LEVELS:
        return sophistication
    return "intermediate"


def extract_gender_preference(session: CoachCreatorSession) -> str:
    answer = _text(session.todo_value("coach_gender_preference")).strip().lower()
    return answer if answer in VALID_GENDERS else "neutral"


def extract_training_frequency(session: CoachCreatorSession) -> int:
    value = session.todo_value("training_frequency")
    if isinstance(value, bool):
        return DEFAULT_TRAINING_FREQUENCY
    if isinstance(value, int):
        frequency = value
    else:
        match = re.search(r"\d+", _text(value))
        if not match:
            return DEFAULT_TRAINING_FREQUENCY
        frequency = int(match.group())
    return frequency if 1 <= frequency <= 7 else DEFAULT_TRAINING_FREQUENCY


def extract_goal_timeline(session: CoachCreatorSession) -> str:
    return _text(session.todo_value("goal_timeline")).strip() or DEFAULT_GOAL_TIMELINE


def extract_intensity_preference(session: CoachCreatorSession) -> str:
    goals = _text(session.todo_value("primary_goals")).lower()
    if any(marker in goals for marker in _HIGH_INTENSITY_MARKERS):
        return "high"
    if any(marker in goals for marker in _LOW_INTENSITY_MARKERS):
        return "low"
    return "moderate"


def extract_safety_profile(session: CoachCreatorSession) -> SafetyProfile:
    injuries = _as_list(session.todo_value("injury_considerations"))
    time_constraints = {
        key: session.todo_value(key)
        for key in ("session_length", "preferred_time")
        if session.todo_value(key) not in (None, "")
    }
    return SafetyProfile(
        injuries=injuries,
        contraindications=_as_list(session.todo_value("movement_limitations")),
        equipment=_as_list(session.todo_value("equipment_access")) or ["basic"],
        modifications=[f"Scale or substitute movements that aggravate {injury}" for injury in injuries],
        time_constraints=time_constraints,
    )


def extract_methodology_preferences(session: CoachCreatorSession) -> MethodologyPreferences:
    goals = _text(session.todo_value("primary_goals"))
    movement_prefs = _text(session.todo_value("movement_preferences"))
    return MethodologyPreferences(
        focus=_matches(f"{goals} {movement_prefs}", _FOCUS_KEYWORDS) or ["strength", "conditioning"],
        preferences=_as_list(session.todo_value("movement_preferences")),
        avoidances=_as_list(session.todo_value("movement_dislikes")),
        experience=get_experience_level(session),
    )


def extract_specializations(session: CoachCreatorSession) -> list[str]:
    explicit = _as_list(session.todo_value("specializations"))
    if explicit:
        return explicit
    goals = _text(session.todo_value("primary_goals"))
    movement_prefs = _text(session.todo_value("movement_preferences"))
    return _matches(f"{goals} {movement_prefs}", _SPECIALIZATION_KEYWORDS)


def build_session_summary(session: CoachCreatorSession) -> str:
    sophistication = session.sophistication_level or "UNKNOWN"
    responses = " | ".join(
        str(m.get("content", "")) for m in session.conversation_history if m.get("role") == "user"
    ) or "No responses"
    if len(responses) > 1000:
        responses = responses[:1000] + "..."
    return (
        f"User {session.user_id} completed coach creator as {sophistication.lower()} level athlete. "
        f"Responses: {responses}"
    )


def extract_session_requirements(session: CoachCreatorSession) -> SessionRequirements:
    """Derive every coach generation input from a completed intake session."""
    return SessionRequirements(
        session=session,
        safety_profile=extract_safety_profile(session),
        methodology_preferences=extract_methodology_preferences(session),
        gender_preference=extract_gender_preference(session),
        training_frequency=extract_training_frequency(session),
        goal_timeline=extract_goal_timeline(session),
        preferred_intensity=extract_intensity_preference(session),
        specializations=extract_specializations(session),
        experience_level=get_experience_level(session),
        session_summary=build_session_summary(session),
    )


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def generate_coach_name(
    personality_template: str,
    methodology_template: str,
    gender_preference: str,
    focus: list[str],
) -> tuple[str, str]:
    """
    Build a coach name and a short specialty description.

    The name is ``<BaseName>_<Specialty>``: the base name is the personality
    template's name for the requested gender, the specialty comes from the
    methodology.

    Returns:
        ``(coach_name, coach_description)``.
    """
    personality = PERSONALITY_TEMPLATES.get(personality_template, EMMA)
    base_name = personality.base_names.get(gender_preference) or personality.base_names["neutral"]
    methodology = METHODOLOGY_TEMPLATES.get(methodology_template)
    specialty = methodology.specialty if methodology else "Coach"

    if focus:
        description = " & ".join(f.title() for f in focus[:2]) + " Coaching"
    elif methodology:
        description = methodology.name
    else:
        description = "Personal Fitness Coaching"
    return f"{base_name}_{specialty}", description


def _session_duration(time_constraints: dict[str, Any]) -> str:
    length = time_constraints.get("session_length")
    if not length:
        return DEFAULT_TIME_CONSTRAINTS["session_duration"]
    length = str(length).strip()
    return length if "min" in length.lower() or "hour" in length.lower() else f"{length} minutes"


def assemble_coach_config(
    user_id: str,
    requirements: SessionRequirements,
    personality: PersonalitySelection,
    methodology: MethodologySelection,
    prompts: CoachPrompts,
    creation_timestamp: str,
) -> dict[str, Any]:
    """Combine the outputs of the earlier creation steps into one coach config."""
    safety = requirements.safety_profile
    preferences = requirements.methodology_preferences
    experience_level = requirements.experience_level

    coach_id = f"user_{user_id}_coach_{int(time.time() * 1000)}"
    coach_name, coach_description = generate_coach_name(
        personality.primary_template,
        methodology.primary_methodology,
        requirements.gender_preference,
        preferences.focus,
    )

    time_constraints = {
        "preferred_time": safety.time_constraints.get("preferred_time") or DEFAULT_TIME_CONSTRAINTS["preferred_time"],
        "session_duration": _session_duration(safety.time_constraints),
        "weekly_frequency": f"{requirements.training_frequency} days per week",
    }
    safety_constraints = {
        "volume_progression_limit": "10%_weekly" if experience_level == "beginner" else "5%_weekly",
        "contraindicated_exercises": list(safety.contraindications),
        "required_modifications": list(safety.modifications),
        "recovery_requirements": list(safety.recovery_needs),
        "safety_monitoring": critical_safety_rule_ids(),
    }
    high_variety = methodology.creativity_emphasis == "high_variety"

    return {
        "coach_id": coach_id,
        "coach_name": coach_name,
        "coach_description": coach_description,
        "status": "active",
        "gender_preference": requirements.gender_preference,
        "selected_personality": {
            "primary_template": personality.primary_template,
            "secondary_influences": list(personality.secondary_influences),
            "selection_reasoning": personality.selection_reasoning,
            "blending_weights": dict(personality.blending_weights),
        },
        "selected_methodology": {
            "primary_methodology": methodology.primary_methodology,
            "methodology_reasoning": methodology.methodology_reasoning,
            "programming_emphasis": methodology.programming_emphasis,
            "periodization_approach": methodology.periodization_approach,
            "creativity_emphasis": methodology.creativity_emphasis,
            "workout_innovation": methodology.workout_innovation,
        },
        "technical_config": {
            "methodology": methodology.primary_methodology,
            "programming_focus": list(preferences.focus),
            "experience_level": experience_level,
            "training_frequency": requirements.training_frequency,
            "specializations": list(requirements.specializations),
            "injury_considerations": list(safety.injuries),
            "goal_timeline": requirements.goal_timeline,
            "preferred_intensity": requirements.preferred_intensity,
            "equipment_available": list(safety.equipment),
            "time_constraints": time_constraints,
            "safety_constraints": safety_constraints,
        },
        "generated_prompts": prompts.model_dump(),
        "modification_capabilities": {
            "enabled_modifications": list(COACH_MODIFICATION_OPTIONS),
            "personality_flexibility": "medium",
            "programming_adaptability": "medium",
            "creative_programming": "high" if high_variety else "medium",
            "workout_variety_emphasis": "high" if high_variety else "medium",
            "safety_override_level": "limited",
        },
        "metadata": {
            "version": "1.0",
            "created_date": creation_timestamp,
            "user_satisfaction": None,
            "total_conversations": 0,
            "safety_profile": safety.model_dump(),
            "methodology_profile": {
                "primary": methodology.primary_methodology,
                "focus": list(preferences.focus),
                "preferences": list(preferences.preferences),
                "experience": [preferences.experience],
            },
            "coach_creator_session_summary": requirements.session_summary,
            "generation_method": "tool",
            "generation_timestamp": creation_timestamp,
        },
    }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_schema(config: dict[str, Any]) -> list[str]:
    """Structural checks; returns error strings, empty when the config is well formed."""
    errors = [f"Missing required field: {name}" for name in REQUIRED_CONFIG_FIELDS if not config.get(name)]

    coach_id = config.get("coach_id")
    if coach_id and not re.match(r"^user_.*_coach_.*$", str(coach_id)):
        errors.append("coach_id must match pattern: user_{userId}_coach_{timestamp}")

    template = (config.get("selected_personality") or {}).get("primary_template")
    if template and template not in PERSONALITY_TEMPLATES:
        errors.append(f"Invalid primary_template: {template}")

    technical = config.get("technical_config") or {}
    level = technical.get("experience_level")
    if level and level not in VALID_EXPERIENCE_LEVELS:
        errors.append(f"Invalid experience_level: {level}")

    frequency = technical.get("training_frequency")
    if frequency is not None and (
        isinstance(frequency, bool) or not isinstance(frequency, (int, float)) or not 1 <= frequency <= 7
    ):
        errors.append("training_frequency must be a number between 1 and 7")

    metadata = config.get("metadata") or {}
    method = metadata.get("generation_method")
    if method and method not in ("tool", "fallback"):
        errors.append(f"Invalid generation_method: {method}. Must be 'tool' or 'fallback'")

    timestamp = metadata.get("generation_timestamp")
    if timestamp:
        try:
            datetime.fromisoformat(str(timestamp))
        except ValueError:
            errors.append("generation_timestamp must be a valid ISO 8601 date-time string")

    return errors


def validate_safety(
    config: dict[str, Any], safety_profile: SafetyProfile, experience_level: str
) -> dict[str, Any]:
    """Check that the user's safety profile made it into the config."""
    issues: list[str] = []
    score = 10
    technical = config.get("technical_config") or {}
    constraints = technical.get("safety_constraints") or {}

    if safety_profile.injuries and not technical.get("injury_considerations"):
        issues.append("Injury considerations not included in technical config")
        score -= 2
    if safety_profile.contraindications and not constraints.get("contraindicated_exercises"):
        issues.append("Contraindicated exercises not properly restricted")
        score -= 2
    if not constraints.get("volume_progression_limit"):
        issues.append("Volume progression limits not specified")
        score -= 1
    if not (config.get("generated_prompts") or {}).get("safety_integrated_prompt"):
        issues.append("Safety considerations not integrated into coach personality")
        score -= 1
    if (
        experience_level == "beginner"
        and (config.get("selected_methodology") or {}).get("primary_methodology") == "misfit_athletics"
    ):
        issues.append("High-volume methodology not appropriate for beginner")
        score -= 2

    score = max(0, score)
    return {"approved": not issues or score >= 7, "issues": issues, "safety_score": score}


def validate_personality_coherence(config: dict[str, Any]) -> dict[str, Any]:
    """Score how well the personality blend and methodology fit together (0-10)."""
    personality = config.get("selected_personality") or {}
    primary = personality.get("primary_template")
    secondary = personality.get("secondary_influences") or []
    methodology = (config.get("selected_methodology") or {}).get("primary_methodology")

    conflicts: list[str] = []
    score = 10
    if primary == "emma" and "diana" in secondary:
        conflicts.append("encouraging_vs_demanding_conflict")
        score -= 2
    if primary == "diana" and "emma" in secondary:
        conflicts.append("performance_vs_beginner_focus_conflict")
        score -= 2
    if methodology == "mayhem_conditioning" and primary == "emma":
        conflicts.append("high_intensity_methodology_vs_beginner_personality")
        score -= 1

    return {
        "consistency_score": max(0, score),
        "conflicting_traits": conflicts,
        "recommendations": (
            ["Consider adjusting personality blend", "Review methodology selection"] if conflicts else []
        ),
    }


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_coach_config(config: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """
    Repair common shape problems in a coach config.

    Returns:
        ``(normalized_config, fixes)``; the input is not modified.
    """
    normalized = copy.deepcopy(config)
    fixes: list[str] = []

    for path in ARRAY_FIELDS:
        *parents, leaf = path.split(".")
        node = normalized
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        value = node.get(leaf)
        if not isinstance(value, list):
            node[leaf] = [value] if value else []
            fixes.append(f"Converted {path} to array")

    technical = normalized["technical_config"]
    if technical.get("experience_level") not in VALID_EXPERIENCE_LEVELS:
        technical["experience_level"] = "intermediate"
        fixes.append("Set default experience_level to intermediate")

    frequency = technical.get("training_frequency")
    if isinstance(frequency, bool) or not isinstance(frequency, (int, float)) or not 1 <= frequency <= 7:
        technical["training_frequency"] = DEFAULT_TRAINING_FREQUENCY
        fixes.append(f"Set default training_frequency to {DEFAULT_TRAINING_FREQUENCY}")

    if not isinstance(technical.get("time_constraints"), dict) or not technical["time_constraints"]:
        technical["time_constraints"] = {
            **DEFAULT_TIME_CONSTRAINTS,
            "weekly_frequency": f"{technical['training_frequency']} days per week",
        }
        fixes.append("Created default time_constraints")

    return normalized, fixes
