"""Exception hierarchy for VK ID sign-in errors.

Provides specific exception types for different failure modes to enable
precise error handling and user messaging at the HTTP boundary.
"""

from __future__ import annotations


class VKIDError(Exception):
    """Base exception for all VK ID sign-in errors."""

    pass


class ConfigurationError(VKIDError):
    """Raised when the VK ID client credentials are not configured."""

    pass


class PreconditionError(VKIDError, ValueError):
    """Raised when a caller passes a missing or malformed required argument.

    Raised before any network I/O takes place.
    """

    pass


class PKCEError(VKIDError):
    """Raised when PKCE parameter generation fails."""

    pass


# Provider client errors


class ProviderClientError(VKIDError):
    """Base exception for failures talking to the VK ID endpoints."""

    pass


class NetworkError(ProviderClientError):
    """Raised on transport failure: connection, DNS, TLS or timeout."""

    pass


class ProtocolError(ProviderClientError):
    """Raised when the provider response is not in the expected shape."""

    pass


class ProviderError(ProviderClientError):
    """Raised when the provider reports an error in its response body."""

    def __init__(self, error: str, error_description: str | None = None):
        self.error = error
        self.error_description = error_description
        message = f"VK ID error: {error}"
        if error_description:
            message += f" - {error_description}"
        super().__init__(message)


# Identity linking errors


class IdentityLinkError(VKIDError):
    """Base exception for account-linking failures."""

    pass


class RegistrationDisabled(IdentityLinkError):
    """Raised when a new account would be needed but registration is disabled."""

    pass


class MergeRejected(IdentityLinkError):
    """Raised when an email match may not be merged with the VK identity.

    Only raised when merging requires the local account's email to be
    confirmed and it is not.
    """

    pass


class AccountStoreError(IdentityLinkError):
    """Raised when the host account store fails a read or write."""

    pass


# Callback errors


class CallbackError(VKIDError):
    """Base exception for a failed authorization callback.

    Carries the HTTP status and the message that is safe to show to the
    end user. The exception message itself may hold server-side detail.
    """

    status_code: int = 400
    public_message: str = "Authentication failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)


class ProviderDenied(CallbackError):
    """Raised when VK ID redirects back with an error instead of a code."""

    status_code = 400

    def __init__(self, error: str, error_description: str | None = None):
        self.error = error
        self.error_description = error_description
        self.public_message = (
            f"VK ID Error: {error} - {error_description or 'No description'}"
        )
        super().__init__(self.public_message)


class MissingCode(CallbackError):
    """Raised when the callback carries no authorization code."""

    status_code = 400
    public_message = "Missing authorization code"


class MissingDeviceId(CallbackError):
    """Raised when the callback carries no device_id."""

    status_code = 400
    public_message = "Missing device_id from VK"


class CSRFMismatch(CallbackError):
    """Raised when the callback state does not match the session state."""

    status_code = 403
    public_message = "Invalid state parameter - CSRF validation failed"


class MissingVerifier(CallbackError):
    """Raised when no PKCE code verifier is pending in the session."""

    status_code = 400
    public_message = "Session error - missing code_verifier"


class TokenExchangeFailed(CallbackError):
    """Raised when the code-for-token exchange fails."""

    status_code = 502
    public_message = "Authentication service unavailable"


class ProfileFetchFailed(CallbackError):
    """Raised when the profile request fails."""

    status_code = 502
    public_message = "Authentication service unavailable"


class LoginFailed(CallbackError):
    """Raised when the VK identity cannot be linked to a local account."""

    status_code = 500
    public_message = "Login failed"

    def __init__(self, message: str | None = None, *, cause: Exception | None = None):
        self.registration_disabled = isinstance(cause, RegistrationDisabled)
        self.merge_rejected = isinstance(cause, MergeRejected)
        if self.registration_disabled:
            self.status_code = 403
            self.public_message = "Registration via VK ID is disabled"
        elif self.merge_rejected:
            self.status_code = 403
            self.public_message = (
                "An account with this email already exists. "
                "Confirm its email address before signing in with VK ID"
            )
        super().__init__(message)


class SessionEstablishmentFailed(CallbackError):
    """Raised when the host fails to log the linked account in."""

    status_code = 500
    public_message = "Login failed"
