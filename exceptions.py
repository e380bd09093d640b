"""
Custom Exception Hierarchy - Domain-specific error types

Provides typed exceptions for the failure modes of the hub.
All custom exceptions inherit from HubError for easy catching.

Every error carries an HTTP status so the API layer can render it
without a per-route translation table:
- Exceptions are data: Include context for debugging
- Fail explicitly: Better to raise specific exception than generic
- Nothing here is retried automatically; is_retryable is informational
"""

from typing import Optional, Dict, Any


class HubError(Exception):
    """Base exception for all hub errors

    All custom exceptions inherit from this, enabling:
    - Catch all hub errors with single except clause
    - Distinguish our errors from library errors
    - Add common attributes (context, status_code)
    """

    _retryable: bool = False
    status_code: int = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Check if this error represents a transient failure.

        Returns:
            True for transient failures (network, connection drops)
            False for permanent failures (validation, missing data)
        """
        return self._retryable

    def __str__(self):
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


# ========== Store Errors ==========


class StoreError(HubError):
    """Document store operation failures

    Examples:
    - Connection failures
    - Serialization errors
    - Malformed documents
    """
    status_code = 502


class StoreConnectionError(StoreError):
    """Failed to establish or maintain the store connection"""
    _retryable = True


class InvalidPathError(StoreError):
    """Key path is empty or contains forbidden characters"""
    status_code = 400

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        context = {}
        if path is not None:
            context['path'] = path
        super().__init__(message, context)


class MissingDocumentError(StoreError):
    """Field write below a document that does not exist

    Field writes never create documents, so a vote or edit that races a
    delete cannot bring back a partial document.
    """
    status_code = 404

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        context = {}
        if path is not None:
            context['path'] = path
        super().__init__(message, context)


# ========== Tally Errors ==========


class TallyError(HubError):
    """Vote / reaction tally failures

    Includes the subject the caller was acting on.
    """

    def __init__(
        self,
        message: str,
        subject_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.subject_id = subject_id
        context = dict(context or {})
        if subject_id:
            context['subject_id'] = subject_id
        super().__init__(message, context)


class UnknownSubject(TallyError):
    """Subject (poll, question, idea, answer) no longer exists"""
    status_code = 404


class InvalidSelection(TallyError):
    """Selection is not among the subject's valid options or tags"""
    status_code = 400

    def __init__(self, message: str, subject_id: Optional[str] = None, selection: Optional[str] = None):
        self.selection = selection
        context = {}
        if selection is not None:
            context['selection'] = selection
        super().__init__(message, subject_id, context)


class WriteFailed(TallyError):
    """Underlying store write failed (network, permission)

    The tally is left stale until the next successful write.
    """
    status_code = 502

    def __init__(
        self,
        message: str,
        subject_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.original_error = original_error
        context = {}
        if original_error:
            context['original_error'] = str(original_error)
        super().__init__(message, subject_id, context)

    @property
    def is_retryable(self) -> bool:
        """Retryable when the wrapped store error is"""
        if isinstance(self.original_error, HubError):
            return self.original_error.is_retryable
        return False


class Unauthenticated(TallyError):
    """Caller has no resolved identity"""
    status_code = 401


# ========== Request Errors ==========


class ValidationError(HubError):
    """Data validation failures

    Examples:
    - Empty text after trimming
    - Fewer than two poll options
    - Malformed URL
    """
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        self.field = field
        self.value = value

        context = {}
        if field:
            context['field'] = field
        if value is not None:
            context['value'] = str(value)

        super().__init__(message, context)


class NotFoundError(HubError):
    """Requested document does not exist"""
    status_code = 404

    def __init__(self, message: str, kind: Optional[str] = None, item_id: Optional[str] = None):
        self.kind = kind
        self.item_id = item_id
        context = {}
        if kind:
            context['kind'] = kind
        if item_id:
            context['id'] = item_id
        super().__init__(message, context)


class ConflictError(HubError):
    """Write conflicts with existing state

    Examples:
    - Second idea on the same day
    - Email already registered
    - Commenting before voting
    """
    status_code = 409


class AuthenticationError(HubError):
    """Bad credentials or missing/expired token"""
    status_code = 401


class PermissionDeniedError(HubError):
    """Caller is authenticated but not allowed to act

    Examples:
    - Editing someone else's poll
    - Admin route without the admin role claim
    """
    status_code = 403


# ========== Configuration Errors ==========


class ConfigurationError(HubError):
    """Configuration or environment errors

    Examples:
    - Missing JWT secret
    - Unknown store backend
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        context = {}
        if config_key:
            context['config_key'] = config_key
        super().__init__(message, context)
