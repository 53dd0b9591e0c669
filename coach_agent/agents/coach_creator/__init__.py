"""Coach creator agent: turns a completed intake session into a coach config."""

from coach_agent.agents.coach_creator.agent import (
    CoachCreatorAgent,
    CoachCreatorSettings,
    build_coach_creator_tools,
)
from coach_agent.agents.coach_creator.models import (
    CoachCreatorContext,
    CoachCreatorKey,
    CoachCreatorResult,
)

__all__ = [
    "CoachCreatorAgent",
    "CoachCreatorContext",
    "CoachCreatorKey",
    "CoachCreatorResult",
    "CoachCreatorSettings",
    "build_coach_creator_tools",
]
