"""
Error taxonomy for member activity aggregates.

Services raise these; live aggregates and the API's exception handlers turn
them into result values so they never reach callers as unhandled errors.
"""


class SmbConnectError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail or self.__class__.__name__


class NotAuthenticated(SmbConnectError):
    """No member id could be resolved for the caller."""

    status_code = 403


class TransientFetchFailure(SmbConnectError):
    """Network or database error while reading a count or list."""

    status_code = 502


class MutationFailure(SmbConnectError):
    """A write (mark read, connection decision, ...) did not take effect."""

    status_code = 502


class NotAChatParticipant(MutationFailure):
    status_code = 404


class ConnectionNotFound(MutationFailure):
    status_code = 404


class ConnectionAlreadyResponded(MutationFailure):
    status_code = 409


class ConnectionExists(MutationFailure):
    status_code = 409


class InvalidConnectionRequest(MutationFailure):
    status_code = 400


class NotificationNotFound(MutationFailure):
    status_code = 404
