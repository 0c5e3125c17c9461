from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Sampling temperature for question generation; a little randomness keeps batches varied
	gemini_temperature: float = Field(default=0.7, validation_alias="GEMINI_TEMPERATURE")
	gemini_timeout_seconds: float = Field(default=30.0, validation_alias="GEMINI_TIMEOUT_SECONDS")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Bank Exam Math Drill", validation_alias="OPENROUTER_TITLE")

	# Session tokens only carry the display name; there are no passwords
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

	# Drill configuration
	drill_question_count: int = Field(default=5, ge=1, le=20, validation_alias="DRILL_QUESTION_COUNT")
	drill_seconds_per_question: int = Field(default=30, ge=1, validation_alias="DRILL_SECONDS_PER_QUESTION")
	# Server-side one-second countdown task; disable to drive ticks through /drill/tick only
	drill_countdown_enabled: bool = Field(default=True, validation_alias="DRILL_COUNTDOWN_ENABLED")

	# Sessions untouched for this long are dropped by the cleanup watcher
	session_idle_minutes: int = Field(default=120, ge=1, validation_alias="SESSION_IDLE_MINUTES")
	session_sweep_seconds: int = Field(default=300, ge=1, validation_alias="SESSION_SWEEP_SECONDS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
