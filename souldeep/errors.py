# souldeep/errors.py


class SouldeepError(Exception):
    """Base class for all service errors."""


class ConfigurationError(SouldeepError):
    """Required configuration is missing or invalid. Fatal at startup."""


class SynthesisError(SouldeepError):
    """The persona synthesizer failed and retrying will not help."""


class SynthesisUnavailableError(SynthesisError):
    """The LLM provider is temporarily unreachable (timeouts, 429, 5xx)."""


class PersonaValidationError(SynthesisError):
    """The provider answered, but the persona it returned breaks the output contract."""


class PersonaNotFoundError(SouldeepError):
    def __init__(self, persona_id: str):
        super().__init__(f"Persona {persona_id} not found")
        self.persona_id = persona_id
