"""Error taxonomy shared by the repositories and the HTTP layer.

Repositories raise these; only ``routes.py`` turns them into responses,
using the ``status_code`` each kind carries.
"""


class AppError(Exception):
    """Base class for every error the core surfaces to callers."""

    status_code = 500

    def __init__(self, message, *, cause=None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self):
        return {"errors": {"body": [self.message]}}


class NotFound(AppError):
    """A lookup by key, slug, username or email matched no live row."""

    status_code = 404

    def __init__(self, message="resource not found", **kwargs):
        super().__init__(message, **kwargs)


class ValidationError(AppError):
    """A uniqueness or required-field constraint was violated on write."""

    status_code = 422


class StorageError(AppError):
    """Any other persistence failure. The transaction is already rolled back."""

    status_code = 500


class AuthorizationError(AppError):
    """The caller tried to mutate a resource they do not own."""

    status_code = 401

    def __init__(self, message="unauthorized action", **kwargs):
        super().__init__(message, **kwargs)
