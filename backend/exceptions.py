"""
Exceptions raised by the outbound WhatsApp pipeline.

Only ConfigurationError (and its subclass) is meant to escape the sender's entry
points. ProviderError and transport errors are turned into {success: False} results
by the sender itself.
"""


class ConfigurationError(Exception):
    """Missing or invalid deployment configuration (token, account, store)."""


class AccountVerificationError(ConfigurationError):
    """The configured WhatsApp account is not listed by the provider or not ready."""


class ProviderError(Exception):
    """The provider answered, but did not accept the request."""

    def __init__(self, message: str, response: dict = None, status_code: int = None):
        super().__init__(message)
        self.response = response or {}
        self.status_code = status_code
