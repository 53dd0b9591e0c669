"""System, retry and utility-model prompts for the coach creator agent."""

from __future__ import annotations

from coach_agent.agent.context import ToolResultStore
from coach_agent.agents.coach_creator.models import (
    CoachCreatorContext,
    CoachCreatorKey,
    MethodologySelection,
    PersonalitySelection,
    SessionRequirements,
)
from coach_agent.agents.coach_creator.templates import (
    METHODOLOGY_TEMPLATES,
    PERSONALITY_TEMPLATES,
    SAFETY_RULES,
)

WORKFLOW_STEPS: tuple[tuple[str, CoachCreatorKey | None], ...] = (
    ("load_session_requirements", CoachCreatorKey.REQUIREMENTS),
    ("select_personality_template", CoachCreatorKey.PERSONALITY_SELECTION),
    ("select_methodology_template", CoachCreatorKey.METHODOLOGY_SELECTION),
    ("generate_coach_prompts", CoachCreatorKey.COACH_PROMPTS),
    ("assemble_coach_config", CoachCreatorKey.ASSEMBLED_CONFIG),
    ("validate_coach_config", None),
    ("normalize_coach_config (if needed)", None),
    ("save_coach_config_to_database", None),
)

JSON_ONLY = "Respond with a single JSON object and nothing else: no prose, no code fences."


def _identity_section() -> str:
    return """# YOU ARE A COACH CREATION SPECIALIST

Your job is to create a personalized AI fitness coach from a completed intake session.
Work through the tools systematically until the coach is saved.

## THIS RUNS UNATTENDED

Nobody will read questions you ask. Never ask for clarification.
Make reasonable assumptions when data is ambiguous and use these defaults when it is missing:
- personality: emma
- methodology: prvn_fitness
- coach gender: neutral
- training frequency: 4 days per week
- experience: intermediate

Your job is to CREATE THE COACH, not to have a conversation."""


def _workflow_section() -> str:
    return """## WORKFLOW

1. load_session_requirements: call first. Loads the session and extracts safety profile,
   methodology preferences, gender preference, frequency, timeline and intensity.
2. select_personality_template and 3. select_methodology_template: both read the loaded
   requirements; call them together in one turn.
4. generate_coach_prompts: writes the 7 coach prompts from the selections.
5. assemble_coach_config(creation_timestamp): builds the full coach config.
6. validate_coach_config: checks schema, safety, coherence and gender.
7. normalize_coach_config: only when validation returns should_normalize=true.
8. save_coach_config_to_database(creation_timestamp): final step.

Tools read earlier results themselves. Do not pass large objects as arguments."""


def _templates_section() -> str:
    personalities = "\n".join(
        f"- {t.id}: {t.name}. Best for: {', '.join(t.best_for)}" for t in PERSONALITY_TEMPLATES.values()
    )
    methodologies = "\n".join(
        f"- {m.id}: {m.name}. Best for: {', '.join(m.best_for)}" for m in METHODOLOGY_TEMPLATES.values()
    )
    return f"## PERSONALITY TEMPLATES\n{personalities}\n\n## METHODOLOGY TEMPLATES\n{methodologies}"


def _rules_section() -> str:
    critical = "\n".join(f"- {r.rule} ({r.category})" for r in SAFETY_RULES if r.severity == "critical")
    return f"""## RULES

- Validation decisions are authoritative. If validate_coach_config returns is_valid=false,
  do NOT call save_coach_config_to_database; explain the issues and stop. A blocked save
  is final.
- The coach's gender_preference must match the user's request.
- Use the same creation timestamp for every tool that takes one.

## CRITICAL SAFETY RULES
{critical}

## RESPONSE FORMAT

Saved: "Coach created successfully! ID: <coach_config_id>, Name: <coach_name>"
Validation failed: "Unable to create coach: <validation issues>"

Now create the coach using your tools."""


def build_coach_creator_prompt() -> str:
    """The static system prompt shared by every coach creation run."""
    sections = [_identity_section(), _workflow_section(), _templates_section(), _rules_section()]
    return "\n\n---\n\n".join(sections)


def build_dynamic_prompt(context: CoachCreatorContext, timestamp: str) -> str:
    return (
        "## CURRENT CREATION SESSION\n"
        f"- User ID: {context.user_id}\n"
        f"- Session ID: {context.session_id}\n"
        f"- Timestamp: {timestamp}"
    )


def build_retry_prompt(agent_response: str, results: ToolResultStore, timestamp: str) -> str:
    """
    Build the follow-up prompt for a run that stopped to ask a question.

    Steps whose results are already stored are marked done so the model can
    skip them; their results stay available to later tools.
    """
    lines = []
    for index, (step, key) in enumerate(WORKFLOW_STEPS, start=1):
        done = key is not None and key in results
        lines.append(f"{index}. {step}{' (✓ ALREADY DONE)' if done else ''}")
    steps = "\n".join(lines)

    return f"""CRITICAL OVERRIDE: You did not complete the coach creation workflow.

Your previous response: "{agent_response[:200]}..."

You MUST now complete the workflow by calling ALL required tools:
{steps}

CRITICAL INSTRUCTIONS:
- DO NOT ask any questions
- CALL YOUR TOOLS to create and save the coach
- Make reasonable assumptions for any missing information
- Use timestamp: {timestamp}

Now create the coach using your tools."""


# ---------------------------------------------------------------------------
# Utility-model prompts used inside tools
# ---------------------------------------------------------------------------


def _profile_lines(requirements: SessionRequirements) -> str:
    safety = requirements.safety_profile
    prefs = requirements.methodology_preferences
    return (
        f"- Sophistication: {requirements.session.sophistication_level}\n"
        f"- Experience: {prefs.experience}\n"
        f"- Goals: {', '.join(prefs.focus) or 'general fitness'}\n"
        f"- Equipment: {', '.join(safety.equipment) or 'basic'}\n"
        f"- Injuries: {', '.join(safety.injuries) or 'none'}\n"
        f"- Gender preference: {requirements.gender_preference}"
    )


def personality_selection_prompt(requirements: SessionRequirements, focus_hint: str | None = None) -> str:
    templates = "\n\n".join(
        f"- {t.id.upper()}: {t.name}\n  Best for: {', '.join(t.best_for)}\n  Style: {t.communication_style}"
        for t in PERSONALITY_TEMPLATES.values()
    )
    hint = f"\nEMPHASIS: {focus_hint}\n" if focus_hint else ""
    return f"""Select the most appropriate coach personality template for this user.

USER PROFILE:
{_profile_lines(requirements)}
{hint}
USER CONVERSATION EXCERPTS:
{requirements.session.user_responses()[:1500]}

AVAILABLE TEMPLATES:
{templates}

GUIDELINES:
- Beginner or returning: often emma
- Intermediate, skill-focused: often marcus
- Advanced or competitive: often diana
- Busy lifestyle, sustainability: often alex

Return JSON:
{{"primary_template": "emma|marcus|diana|alex", "secondary_influences": ["template_id"],
 "selection_reasoning": "...", "blending_weights": {{"primary": 0.7, "secondary": 0.3}}}}

{JSON_ONLY}"""


def methodology_selection_prompt(requirements: SessionRequirements, focus_hint: str | None = None) -> str:
    methodologies = "\n\n".join(
        f"- {m.id}: {m.name}\n  Best for: {', '.join(m.best_for)}\n"
        f"  Strength bias: {m.strength_bias}\n  Conditioning: {m.conditioning_approach}"
        for m in METHODOLOGY_TEMPLATES.values()
    )
    hint = f"\nEMPHASIS: {focus_hint}\n" if focus_hint else ""
    return f"""Select the optimal training methodology for this user.

USER PROFILE:
{_profile_lines(requirements)}
- Training frequency: {requirements.training_frequency} days per week
- Goal timeline: {requirements.goal_timeline}
{hint}
AVAILABLE METHODOLOGIES:
{methodologies}

Return JSON:
{{"primary_methodology": "methodology_id", "methodology_reasoning": "...",
 "programming_emphasis": "strength|conditioning|balanced",
 "periodization_approach": "linear|conjugate|block|daily_undulating",
 "creativity_emphasis": "high_variety|medium_variety|low_variety",
 "workout_innovation": "enabled|disabled"}}

{JSON_ONLY}"""


_GENDER_TONE = {
    "male": "Male coach persona with he/him pronouns, confident direct style...",
    "female": "Female coach persona with she/her pronouns, warm supportive style...",
    "neutral": "Gender-neutral coach with balanced professional characteristics...",
}


def coach_prompts_prompt(
    requirements: SessionRequirements,
    personality: PersonalitySelection,
    methodology: MethodologySelection,
) -> str:
    template = PERSONALITY_TEMPLATES[personality.primary_template]
    method = METHODOLOGY_TEMPLATES[methodology.primary_methodology]
    return f"""Generate the prompts for a personalized AI fitness coach.

COACH IDENTITY:
- Personality: {template.id} ({template.name})
- Methodology: {method.id} ({method.name})
- Gender: {requirements.gender_preference}

USER PROFILE:
{_profile_lines(requirements)}

PERSONALITY REFERENCE:
{template.full_prompt}

METHODOLOGY REFERENCE:
- Approach: {method.programming_approach}
- Strength bias: {method.strength_bias}
- Conditioning: {method.conditioning_approach}

Return JSON with 7 complete prompts, each 100-300 words and written for THIS user:
{{"personality_prompt": "...", "safety_integrated_prompt": "...", "motivation_prompt": "...",
 "methodology_prompt": "...", "communication_style": "...", "learning_adaptation_prompt": "...",
 "gender_tone_prompt": "{_GENDER_TONE.get(requirements.gender_preference, _GENDER_TONE['neutral'])}"}}

{JSON_ONLY}"""
