"""Custom exceptions for handler registration, dispatch and state storage."""

from typing import Optional


class DispatchError(Exception):
    """Base class for dispatcher errors."""
    pass


class HandlerRegistrationError(DispatchError):
    """Raised at startup when a handler module cannot be registered."""

    def __init__(self, handler_id: str, message: Optional[str] = None):
        self.handler_id = handler_id

        if message is None:
            message = f"Handler with ID '{handler_id}' is already registered"

        super().__init__(message)


class HandlerNotRegisteredError(DispatchError, KeyError):
    """Raised when switching to a handler module that was never registered."""

    def __init__(self, handler_id: str):
        self.handler_id = handler_id
        self.message = f"No handler with ID '{handler_id}' was registered"
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class StateStoreError(Exception):
    """Raised when the state store cannot complete an operation."""

    def __init__(self, operation: str, error: Optional[Exception] = None):
        self.operation = operation
        self.error = error

        message = f"State store operation '{operation}' failed"
        if error is not None:
            message = f"{message}: {error}"

        super().__init__(message)
