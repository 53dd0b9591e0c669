"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentDefaults(BaseModel):
    """Default agent configuration."""

    model: str = "bedrock/us.anthropic.claude-sonnet-4-5-20250929-v1:0"
    utility_model: str = "bedrock/us.anthropic.claude-haiku-4-5-20251001-v1:0"
    max_tokens: int = 32768
    temperature: float = 0.7
    max_tool_iterations: int = 20


class AgentsConfig(BaseModel):
    """Agent configuration."""

    defaults: AgentDefaults = Field(default_factory=AgentDefaults)


class ProviderConfig(BaseModel):
    """LLM provider configuration."""

    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""

    bedrock: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)


class CoachCreatorConfig(BaseModel):
    """Coach creation workflow configuration."""

    min_required_tools: int = 5
    parallel_template_selection: bool = True


class ConversationConfig(BaseModel):
    """Streaming conversation agent configuration."""

    max_tool_iterations: int = 15
    contextual_update_timeout: float = 3.0
    memory_detection: bool = True


class StorageConfig(BaseModel):
    """Local persistence configuration."""

    data_dir: str = "~/.coach-agent/data"


class JobsConfig(BaseModel):
    """Background job dispatch configuration."""

    api_base: str = ""
    token: str = ""
    build_workout_job: str = "build-workout"
    timeout: float = 10.0


class Config(BaseSettings):
    """Root configuration for coach-agent."""

    model_config = SettingsConfigDict(
        env_prefix="COACH_AGENT_",
        env_nested_delimiter="__",
    )

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        # Environment variables win over values passed in from the config file.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    coach_creator: CoachCreatorConfig = Field(default_factory=CoachCreatorConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)

    @property
    def data_path(self) -> Path:
        """Get expanded data directory path."""
        return Path(self.storage.data_dir).expanduser()

    def get_api_key(self) -> str | None:
        """Get API key in priority order: Bedrock > Anthropic > OpenAI."""
        return (
            self.providers.bedrock.api_key
            or self.providers.anthropic.api_key
            or self.providers.openai.api_key
            or None
        )

    def get_api_base(self) -> str | None:
        """Get API base URL of the first provider that sets one."""
        return (
            self.providers.bedrock.api_base
            or self.providers.anthropic.api_base
            or self.providers.openai.api_base
            or None
        )
