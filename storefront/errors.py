"""Domain errors raised by the payment and checkout layers.

They are translated into JSON error payloads once, by the exception
handlers registered in ``storefront.main``.
"""


class StorefrontError(Exception):
    """Base class; ``message`` is safe to show to the buyer."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(StorefrontError):
    """Gateway credentials are missing. Fatal for the deployment."""


class ValidationError(StorefrontError):
    """Bad input the user can correct (e.g. amount below the minimum)."""


class GatewayError(StorefrontError):
    """Non-2xx or malformed response from the payment gateway."""


class AuthError(GatewayError):
    """The gateway refused the client-credentials exchange."""


class InvalidTransition(StorefrontError):
    """A checkout action was requested from a state that does not allow it."""
