from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SpeechSettings:
    locale: str = "en-US"
    tts_default_voice: str = "en-US-ShimmerTurboMultilingualNeural"
    azure_region: str = "northeurope"
    asr_default_complete_timeout_ms: int = 0
    asr_default_no_input_timeout_ms: int = 15_000


@dataclass(frozen=True)
class SessionConfig:
    initial_inventory: tuple[str, ...] = ("your notepad", "your pen")
    # The start screen keeps inventory and name unless this is set.
    reset_progress_on_restart: bool = False
    # Spoken when the password prompt times out; "" re-prompts with silence.
    password_noinput_prompt: str = "Please say the password."
    require_listen_fallbacks: bool = True
    speak_timeout_seconds: Optional[float] = None
    speech: SpeechSettings = field(default_factory=SpeechSettings)
