"""Configuration constants and helpers for Sewa Sathi."""

import os
from pathlib import Path

DEFAULT_PORT: int = 7870

SATHI_DIR: Path = Path(os.environ.get("SATHI_HOME", str(Path.home() / ".sewa-sathi")))
PID_FILE: Path = SATHI_DIR / "server.pid"
LOG_FILE: Path = SATHI_DIR / "server.log"
SETTINGS_FILE: Path = SATHI_DIR / "settings.json"


def get_port() -> int:
    """Return the server port from SATHI_PORT env var, or DEFAULT_PORT."""
    raw = os.environ.get("SATHI_PORT")
    if raw is not None:
        try:
            return int(raw)
        except ValueError:
            return DEFAULT_PORT
    return DEFAULT_PORT


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# --- Speech recognition configuration ---

RECOGNITION_LANGUAGE: str = os.environ.get("SATHI_RECOGNITION_LANGUAGE", "en-US")
RECOGNITION_CONTINUOUS: bool = _env_bool("SATHI_ALWAYS_LISTEN", False)
RECOGNITION_MAX_ALTERNATIVES: int = int(
    os.environ.get("SATHI_RECOGNITION_MAX_ALTERNATIVES", "3")
)
CONFIDENCE_THRESHOLD: float = float(
    os.environ.get("SATHI_CONFIDENCE_THRESHOLD", "0.0")
)  # Finals below this are rejected before matching. 0 = accept all.

STT_API_KEY: str = os.environ.get("SATHI_STT_API_KEY", "")
STT_BASE_URL: str = os.environ.get("SATHI_STT_BASE_URL", "https://api.openai.com")
STT_MODEL: str = os.environ.get("SATHI_STT_MODEL", "whisper-1")
STT_TIMEOUT: float = float(os.environ.get("SATHI_STT_TIMEOUT", "10.0"))
STT_HEALTH_CHECK_INTERVAL: float = float(
    os.environ.get("SATHI_STT_HEALTH_CHECK_INTERVAL", "60.0")
)
STT_LISTEN_TIMEOUT: float = float(os.environ.get("SATHI_STT_LISTEN_TIMEOUT", "8.0"))
STT_SILENCE_THRESHOLD: float = float(
    os.environ.get("SATHI_STT_SILENCE_THRESHOLD", "0.01")
)
STT_SILENCE_DURATION: float = float(
    os.environ.get("SATHI_STT_SILENCE_DURATION", "1.2")
)
STT_MAX_RECORD_DURATION: float = float(
    os.environ.get("SATHI_STT_MAX_RECORD_DURATION", "15.0")
)


# --- Speech synthesis configuration ---

ELEVENLABS_API_KEY: str = os.environ.get("SATHI_ELEVENLABS_API_KEY", "")
ELEVENLABS_BASE_URL: str = os.environ.get(
    "SATHI_ELEVENLABS_BASE_URL", "https://api.elevenlabs.io"
)
TTS_VOICE_ID: str = os.environ.get("SATHI_TTS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM")
TTS_MODEL: str = os.environ.get("SATHI_TTS_MODEL", "eleven_turbo_v2_5")
TTS_TIMEOUT: float = float(os.environ.get("SATHI_TTS_TIMEOUT", "10.0"))
TTS_HEALTH_CHECK_INTERVAL: float = float(
    os.environ.get("SATHI_TTS_HEALTH_CHECK_INTERVAL", "60.0")
)

TTS_DEFAULT_RATE: float = float(os.environ.get("SATHI_TTS_RATE", "0.9"))
TTS_DEFAULT_PITCH: float = float(os.environ.get("SATHI_TTS_PITCH", "1.0"))
TTS_DEFAULT_VOLUME: float = float(os.environ.get("SATHI_TTS_VOLUME", "0.8"))

# Voice names containing one of these are treated as the higher quality engine voices.
TTS_PREFERRED_VOICE_KEYWORDS: tuple[str, ...] = tuple(
    word.strip()
    for word in os.environ.get(
        "SATHI_TTS_PREFERRED_VOICES", "Natural,Google,Microsoft"
    ).split(",")
    if word.strip()
)

AUDIO_SAMPLE_RATE: int = int(os.environ.get("SATHI_AUDIO_SAMPLE_RATE", "16000"))


# --- AI fallback configuration ---

AI_PROVIDER: str = os.environ.get("SATHI_AI_PROVIDER", "gemini")
AI_HEALTH_CHECK_INTERVAL: float = 60.0  # Re-check the AI endpoint every 60s

GEMINI_API_KEY: str = os.environ.get("SATHI_GEMINI_API_KEY", "")
GEMINI_BASE_URL: str = os.environ.get(
    "SATHI_GEMINI_BASE_URL", "https://generativelanguage.googleapis.com"
)
GEMINI_MODEL: str = os.environ.get("SATHI_GEMINI_MODEL", "gemini-1.5-flash")
GEMINI_TIMEOUT: float = float(os.environ.get("SATHI_GEMINI_TIMEOUT", "30.0"))

OLLAMA_BASE_URL: str = os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL: str = os.environ.get("SATHI_LLM_MODEL", "qwen2.5:0.5b")
OLLAMA_TIMEOUT: float = float(os.environ.get("SATHI_LLM_TIMEOUT", "30.0"))


# --- Chat log / dispatch configuration ---

CHAT_LOG_MAX_MESSAGES: int = int(os.environ.get("SATHI_CHAT_LOG_MAX", "200"))
PAGE_CONTEXT: str = os.environ.get(
    "SATHI_PAGE_CONTEXT",
    "Accessible website with emergency services, medical support, "
    "transportation and education resources.",
)


# --- Emergency numbers ---

EMERGENCY_POLICE: str = os.environ.get("SATHI_EMERGENCY_POLICE", "100")
EMERGENCY_FIRE: str = os.environ.get("SATHI_EMERGENCY_FIRE", "101")
EMERGENCY_AMBULANCE: str = os.environ.get("SATHI_EMERGENCY_AMBULANCE", "102")
EMERGENCY_DISABILITY: str = os.environ.get(
    "SATHI_EMERGENCY_DISABILITY", "+977 9768442380"
)
