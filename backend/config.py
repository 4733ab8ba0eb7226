"""
Application configuration.

Responsibilities:
- Read environment variables
- Provide a typed, immutable config object
- Build the backend clients from it

Non-responsibilities:
- No orchestration logic
- No protocol constants
- No runtime mutation
- No configuration files (the process owner exports the environment)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from openai import AsyncOpenAI

from adapters.llm.streaming import OpenAICompatibleGenerationClient
from adapters.tts.glm import GLMSynthesisClient
from observability import logger
from orchestrator.enums.policy import AnswerContextMode, ResumePolicy
from constants import (
    BACKEND_MAX_RETRIES,
    LLM_DEFAULT_BASE_URL,
    LLM_DEFAULT_MODEL,
    TTS_DEFAULT_BASE_URL,
    TTS_DEFAULT_MODEL,
    TTS_DEFAULT_VOICE,
    TTS_DEFAULT_SPEED,
    TTS_DEFAULT_VOLUME,
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # LLM configuration
    # ------------------------------------------------------------------

    llm_base_url: str
    llm_model: str
    llm_api_key: str | None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # TTS
    # ------------------------------------------------------------------

    tts_base_url: str
    tts_api_key: str | None
    tts_model: str
    tts_voice: str
    tts_speed: float
    tts_volume: float

    # ------------------------------------------------------------------
    # Interruption policy
    # ------------------------------------------------------------------

    resume_policy: ResumePolicy = ResumePolicy.DISCARD
    answer_context_mode: AnswerContextMode = AnswerContextMode.NONE

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a policy or number variable holds an invalid value.
        """
        llm_api_key = os.environ.get("LLM_API_KEY")
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),

            llm_base_url=os.environ.get("LLM_BASE_URL", LLM_DEFAULT_BASE_URL),
            llm_model=os.environ.get("LLM_MODEL", LLM_DEFAULT_MODEL),
            llm_api_key=llm_api_key,

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            tts_base_url=os.environ.get("TTS_BASE_URL", TTS_DEFAULT_BASE_URL),
            # The speech endpoint usually shares the LLM key
            tts_api_key=os.environ.get("TTS_API_KEY", llm_api_key),
            tts_model=os.environ.get("TTS_MODEL", TTS_DEFAULT_MODEL),
            tts_voice=os.environ.get("TTS_VOICE", TTS_DEFAULT_VOICE),
            tts_speed=float(os.environ.get("TTS_SPEED", TTS_DEFAULT_SPEED)),
            tts_volume=float(os.environ.get("TTS_VOLUME", TTS_DEFAULT_VOLUME)),

            resume_policy=ResumePolicy(
                os.environ.get("SCRIPT_RESUME_POLICY", ResumePolicy.DISCARD.value).lower()
            ),
            answer_context_mode=AnswerContextMode(
                os.environ.get("ANSWER_CONTEXT_MODE", AnswerContextMode.NONE.value).lower()
            ),
        )

    def configure_logging(self) -> None:
        """
        Apply the observability settings to the process-wide logger.

        Raises:
            ValueError if log_level is not a known level name.
        """
        logger.configure(json_lines=self.enable_json_logs, min_level=self.log_level)


# ----------------------------------------------------------------------
# Client factories
# ----------------------------------------------------------------------

def build_generation_client(
    config: AppConfig,
    *,
    session_id: str | None = None,
) -> OpenAICompatibleGenerationClient:
    """Generation client for the configured chat backend (no SDK retries)."""
    client = AsyncOpenAI(
        api_key=config.llm_api_key,
        base_url=config.llm_base_url,
        max_retries=BACKEND_MAX_RETRIES,
    )
    return OpenAICompatibleGenerationClient(
        client=client,
        model=config.llm_model,
        session_id=session_id,
    )


def build_synthesis_client(
    config: AppConfig,
    *,
    session_id: str | None = None,
) -> GLMSynthesisClient:
    """Synthesis client for the configured speech backend (no SDK retries)."""
    client = AsyncOpenAI(
        api_key=config.tts_api_key,
        base_url=config.tts_base_url,
        max_retries=BACKEND_MAX_RETRIES,
    )
    return GLMSynthesisClient(
        client=client,
        model=config.tts_model,
        voice=config.tts_voice,
        speed=config.tts_speed,
        volume=config.tts_volume,
        session_id=session_id,
    )
