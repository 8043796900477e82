"""Core services: event bus, conversation state and the chat orchestrator."""

from termpilot.services.chat import ChatService
from termpilot.services.circuit_breaker import CircuitBreaker, CircuitState
from termpilot.services.conversation_state import ConversationState
from termpilot.services.event_bus import EventBus

__all__ = ["ChatService", "CircuitBreaker", "CircuitState", "ConversationState", "EventBus"]
