"""User-facing text for failed exchanges."""

from ..errors import (
    AuthExpired,
    IncompleteAggregate,
    MalformedArguments,
    PumpscopeError,
    TransportError,
    UnknownFunction,
)

NETWORK_ERROR_MESSAGE = "Oops! Looks like something went wrong. You can try again or modify your question."
INTENTION_ERROR_MESSAGE = (
    "Apologies, we couldn't understand the command. Please ensure the command is valid and try again."
)
TRADER_NOT_FOUND_MESSAGE = "Trader not found. You can give me a solana address of another trader."


def user_message_for(error: Exception) -> str:
    """Map an exchange failure to the text shown in chat."""
    if isinstance(error, IncompleteAggregate):
        return TRADER_NOT_FOUND_MESSAGE
    if isinstance(error, (MalformedArguments, UnknownFunction)):
        return INTENTION_ERROR_MESSAGE
    if isinstance(error, (TransportError, AuthExpired)):
        return NETWORK_ERROR_MESSAGE
    if isinstance(error, PumpscopeError) and "not found" in error.message:
        return TRADER_NOT_FOUND_MESSAGE
    return NETWORK_ERROR_MESSAGE
