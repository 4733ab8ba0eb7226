"""
BEHAVIOUR-AS-CONSTANTS
----------------------
Single source of truth for every behavioural constant in the player.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Audio Format (PCM16 mono, 20ms frames)
# =============================================================================

# GLM-TTS returns 24kHz PCM16 mono when asked for response_format=pcm
AUDIO_SAMPLE_RATE_HZ: Final[int] = 24_000
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)
AUDIO_FRAME_MS: Final[int] = 20

AUDIO_SAMPLES_PER_FRAME: Final[int] = (AUDIO_SAMPLE_RATE_HZ * AUDIO_FRAME_MS) // 1000
AUDIO_BYTES_PER_FRAME_PCM: Final[int] = AUDIO_SAMPLES_PER_FRAME * AUDIO_SAMPLE_WIDTH_BYTES

# =============================================================================
# Event-stream wire format (shared by generation and synthesis backends)
# =============================================================================

SSE_DATA_PREFIX: Final[str] = "data: "
SSE_DONE_SENTINEL: Final[str] = "[DONE]"

# =============================================================================
# TTS input ceiling & chunking policy
# =============================================================================

# GLM-TTS rejects inputs longer than this many bytes (UTF-8)
TTS_MAX_INPUT_BYTES: Final[int] = 1024

# Forced cut position when no punctuation is usable, as a window fraction
TTS_FORCE_CUT_RATIO: Final[float] = 0.8

# Sentence terminators, wide and narrow
TTS_SENTENCE_BREAK_CHARS: Final[Tuple[str, ...]] = (
    "。", "！", "？", ".", "!", "?",
)

# Clause separators, wide and narrow
TTS_CLAUSE_BREAK_CHARS: Final[Tuple[str, ...]] = (
    "，", "；", ",", ";",
)

# =============================================================================
# Backend defaults
# =============================================================================

LLM_DEFAULT_BASE_URL: Final[str] = "https://open.bigmodel.cn/api/paas/v4"
LLM_DEFAULT_MODEL: Final[str] = "glm-4.7-flashx"

TTS_DEFAULT_BASE_URL: Final[str] = "https://open.bigmodel.cn/api/paas/v4"
TTS_DEFAULT_MODEL: Final[str] = "glm-tts"
TTS_DEFAULT_VOICE: Final[str] = "tongtong"
TTS_DEFAULT_SPEED: Final[float] = 1.0
TTS_DEFAULT_VOLUME: Final[float] = 1.0

# Retry policy belongs to callers wrapping the clients
BACKEND_MAX_RETRIES: Final[int] = 0

# =============================================================================
# Voice activity (reference energy monitor)
# =============================================================================

VAD_RMS_THRESHOLD_DEFAULT: Final[float] = 0.08  # heuristic default
VAD_FRAMES_REQUIRED_DEFAULT: Final[int] = 5
VAD_RELEASE_FRAMES_DEFAULT: Final[int] = 25

# Frames buffered between capture and detection; oldest dropped beyond this
VAD_MAX_BUFFERED_FRAMES: Final[int] = 50

# =============================================================================
# Answer context
# =============================================================================

MAX_CONTEXT_CHARS: Final[int] = 6_000

