"""Error taxonomy shared by the hub and its transport adapters."""


class RelayError(Exception):
    """Base class for activity relay errors."""


class MalformedInput(RelayError, ValueError):
    """Raised when an inbound payload cannot be turned into an event."""


class SubscriberUnreachable(RelayError):
    """Raised by a subscriber whose channel can no longer accept messages."""


class UnsupportedOperation(RelayError):
    """Raised when a client asks for a method the endpoint does not serve."""
