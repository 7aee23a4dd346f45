# Generator package

# Makes generate/ importable and exposes key interfaces.

from .requester import FeedbackRequester
from .types import Message, ModelParams, Persona, DEFAULT_PERSONA
from .clients.echo_dev_client import EchoDevClient


def build_model_client(settings):
    """Ollama if USE_OLLAMA, OpenAI if a key is set, else the offline echo client."""
    if settings.USE_OLLAMA:
        from .clients.ollama_client import OllamaClient
        return OllamaClient(model=settings.OLLAMA_MODEL, host=settings.OLLAMA_HOST)
    if settings.OPENAI_API_KEY:
        from .clients.openai_client import OpenAIClient
        return OpenAIClient(model=settings.OPENAI_MODEL, api_key=settings.OPENAI_API_KEY)
    return EchoDevClient()


__all__ = [
    "FeedbackRequester",
    "Message",
    "ModelParams",
    "Persona",
    "DEFAULT_PERSONA",
    "EchoDevClient",
    "build_model_client",
]
