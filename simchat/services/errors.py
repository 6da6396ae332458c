"""
Recoverable error taxonomy shared by the directory, ledger, delivery and story services.
"""


class SimChatError(Exception):
    """Base class for local, recoverable failures shown to the user."""
    pass


class ValidationError(SimChatError):
    """Malformed or conflicting input: bad identifier, empty or taken name, self-link, unknown account."""
    pass


class AuthError(SimChatError):
    """Identifier/secret mismatch, or no account signed in."""
    pass


class LimitError(SimChatError):
    """An owner already holds the maximum number of active stories."""
    pass
