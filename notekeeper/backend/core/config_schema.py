"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. If a YAML file
has missing keys, wrong types, or unknown fields, a clear ValidationError
is raised at startup instead of a cryptic KeyError deep in application code.

Each top-level class corresponds to one file in config/settings/:
    ApplicationSchema  → application.yaml
    DatabaseSchema     → database.yaml
    LoggingSchema      → logging.yaml
    FeaturesSchema     → features.yaml
    GatewaySchema      → gateway.yaml
    EditorSchema       → editor.yaml
    ConcurrencySchema  → concurrency.yaml
"""

from pydantic import BaseModel, ConfigDict, Field


class _StrictBase(BaseModel):
    """Base with extra='forbid' so unknown YAML keys are caught immediately."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# application.yaml
# =============================================================================


class ServerSchema(_StrictBase):
    host: str
    port: int


class CorsSchema(_StrictBase):
    origins: list[str]
    allow_credentials: bool = False


class TimeoutsSchema(_StrictBase):
    database: int
    external_api: int


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    api_prefix: str
    server: ServerSchema
    cors: CorsSchema
    timeouts: TimeoutsSchema


# =============================================================================
# database.yaml
# =============================================================================


class DatabaseSchema(_StrictBase):
    driver: str
    name: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.driver.startswith("sqlite")


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: str
    handlers: HandlersSchema


# =============================================================================
# features.yaml
# =============================================================================


class FeaturesSchema(_StrictBase):
    assist_enabled: bool
    assist_test_probe_enabled: bool
    api_request_logging: bool
    api_docs_enabled: bool


# =============================================================================
# gateway.yaml
# =============================================================================


class GenerationSchema(_StrictBase):
    default_max_length: int = 512
    max_output_tokens: int = 1000
    default_temperature: float = 0.3
    top_k: int = 40
    top_p: float = 0.95


class GeminiProviderSchema(_StrictBase):
    base_url: str
    model: str
    safety_threshold: str = "BLOCK_MEDIUM_AND_ABOVE"


class HuggingFaceProviderSchema(_StrictBase):
    base_url: str
    model: str
    wait_for_model: bool = True


class ProvidersSchema(_StrictBase):
    gemini: GeminiProviderSchema
    huggingface: HuggingFaceProviderSchema


class BreakerSchema(_StrictBase):
    fail_max: int = 5
    timeout_duration: int = 30


class GatewaySchema(_StrictBase):
    provider: str
    timeout_seconds: float
    generation: GenerationSchema
    providers: ProvidersSchema
    circuit_breaker: BreakerSchema


# =============================================================================
# editor.yaml
# =============================================================================


class AssistClientSchema(_StrictBase):
    mode: str = Field(default="gateway", pattern="^(gateway|local)$")
    endpoint: str
    max_length: int = 512
    temperature: float = 0.3


class EditorSchema(_StrictBase):
    default_title: str = "Untitled Note"
    content_format: str = Field(default="markdown", pattern="^(markdown|html)$")
    auto_save_delay_ms: int = 1000
    double_enter_window_ms: int = 800
    double_enter_min_interval_ms: int = 50
    auto_save_status_ms: int = 2000
    assist_status_ms: int = 3000
    preview_length: int = 100
    assist: AssistClientSchema


# =============================================================================
# concurrency.yaml
# =============================================================================


class SemaphoresSchema(_StrictBase):
    database: int
    upstream_llm: int


class ConcurrencySchema(_StrictBase):
    semaphores: SemaphoresSchema
