from __future__ import annotations


class VoiceGameError(Exception):
    pass


class GraphConfigurationError(VoiceGameError, ValueError):
    """Raised while building a narrative graph; the session must not start."""


class UnknownNodeError(VoiceGameError, KeyError):
    pass


class SessionNotStartedError(VoiceGameError, RuntimeError):
    pass
