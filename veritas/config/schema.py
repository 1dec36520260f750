"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

STORE_DIRNAME = ".veritas"
STORE_FILENAME = "veritas-knowledge.json"


class AgentDefaults(BaseModel):
    """Default agent configuration."""
    workspace: str = "~/.veritas/workspace"
    model: str = "gpt-4o-mini"
    fast_model: str | None = None  # used for "fast" completions such as argument extraction
    max_tokens: int = 4096
    temperature: float = 0.2
    skill_candidates: int = Field(default=5, ge=1, le=50, description="Skills considered per request")
    strategy_preference: list[str] = Field(default_factory=lambda: ["default", "simple-llm", "mock"])


class AgentsConfig(BaseModel):
    """Agent configuration."""
    defaults: AgentDefaults = Field(default_factory=AgentDefaults)


class KnowledgeConfig(BaseModel):
    """Knowledge store configuration."""
    storage_path: str | None = None  # defaults to <workspace>/.veritas/veritas-knowledge.json
    max_context_aspects: int = Field(default=30, ge=1, le=500, description="Aspects sent with citation prompts")


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    model_config = ConfigDict(extra="ignore")

    api_key: str = ""
    api_base: str | None = None


class AuditConfig(BaseModel):
    """Audit log configuration."""
    enabled: bool = True
    log_dir: str | None = None  # defaults to <workspace>/logs


class LoggingConfig(BaseModel):
    """Log output configuration."""
    level: str = "INFO"
    file: str | None = None  # also write to this file when set
    rotation: str = "10 MB"
    retention: int = Field(default=3, ge=1, description="Rotated files kept")


class Config(BaseSettings):
    """Root configuration for veritas."""
    model_config = SettingsConfigDict(env_prefix="VERITAS_", env_nested_delimiter="__")

    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    knowledge: KnowledgeConfig = Field(default_factory=KnowledgeConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def workspace_path(self) -> Path:
        """Get expanded workspace path."""
        return Path(self.agents.defaults.workspace).expanduser()

    @property
    def knowledge_path(self) -> Path:
        """Get the knowledge store file path."""
        if self.knowledge.storage_path:
            return Path(self.knowledge.storage_path).expanduser()
        return self.workspace_path / STORE_DIRNAME / STORE_FILENAME

    @property
    def audit_path(self) -> Path:
        """Get the audit log directory."""
        if self.audit.log_dir:
            return Path(self.audit.log_dir).expanduser()
        return self.workspace_path / "logs"

    def get_api_key(self) -> str | None:
        return self.provider.api_key or None

    def get_api_base(self) -> str | None:
        return self.provider.api_base
