"""Completion API clients."""

from termpilot.clients.anthropic import AnthropicClient
from termpilot.clients.base import BaseCompletionClient, ClientConfig, CompletionClient, RateLimiter
from termpilot.clients.openai import OpenAIClient
from termpilot.config import Profile
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)


def create_client(profile: Profile | None, config: ClientConfig | None = None) -> CompletionClient | None:
    """Build the completion client for a profile.

    Returns:
        None when the profile is missing or has no API key; the chat service then
        reports a configuration error instead of calling the network.
    """
    if profile is None or not profile.is_valid:
        logger.warning("No valid profile configured, completion API disabled")
        return None

    client_config = config or ClientConfig()
    client_config.model = profile.model

    if profile.provider == "anthropic":
        return AnthropicClient(api_key=profile.api_key, base_url=profile.base_url or None, config=client_config)
    return OpenAIClient(api_key=profile.api_key, base_url=profile.base_url or None, config=client_config)


__all__ = [
    "AnthropicClient",
    "BaseCompletionClient",
    "ClientConfig",
    "CompletionClient",
    "OpenAIClient",
    "RateLimiter",
    "create_client",
]
