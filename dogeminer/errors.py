"""Exception types mapped to HTTP status codes by the app."""


class DogeMinerError(Exception):
    """Base error. ``status_code`` is the HTTP status the API responds with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(DogeMinerError):
    """Missing or invalid bearer token."""

    status_code = 401


class ValidationError(DogeMinerError):
    """Request input failed validation."""

    status_code = 400


class StoreError(DogeMinerError):
    """The Supabase store could not be reached or rejected a request."""


class ExplorerError(DogeMinerError):
    """The block explorer could not be reached."""


class PaymentProcessorError(DogeMinerError):
    """FaucetPay or the mail provider failed."""
