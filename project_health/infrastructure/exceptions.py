"""
Error types for the project health tracker.

Every error carries two messages: ``message`` for logs and ``user_message``
for people looking at the dashboard. ``status_code`` is the HTTP status the
API answers with when the error escapes a route.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import exc as sa_exc


class ProjectHealthError(Exception):
    """Base class for errors raised by the tracker."""

    status_code = 400
    default_user_message = "Something went wrong. Please try again."

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        return self.default_user_message

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class EmptyInputError(ProjectHealthError):
    """A score calculation was asked to average nothing."""

    default_user_message = "No scores were provided for this calculation."

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            message=f"Cannot compute {operation} of an empty sequence",
            details={"operation": operation},
        )


class ValidationError(ProjectHealthError):
    """A single field of a project or assessment form is invalid."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )


class MultipleValidationError(ProjectHealthError):
    """Several fields are invalid; each one is kept in ``validation_errors``."""

    def __init__(self, errors: list[ValidationError]):
        self.validation_errors = errors
        super().__init__(
            message="; ".join(f"{e.field}: {e.message}" for e in errors),
            details={
                "errors": [
                    {"field": e.field, "message": e.message, "value": e.value} for e in errors
                ]
            },
        )

    def _get_default_user_message(self) -> str:
        fields = ", ".join(e.field.replace("_", " ") for e in self.validation_errors)
        return f"Please correct these fields and try again: {fields}."


class NotFoundError(ProjectHealthError):
    status_code = 404
    default_user_message = "The requested item could not be found."


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(
            message=f"Project with ID {project_id} not found",
            details={"project_id": project_id},
        )

    def _get_default_user_message(self) -> str:
        return "The selected project could not be found. Please return to the dashboard."


class AssessmentNotFoundError(NotFoundError):
    def __init__(self, project_id: str, week: str):
        self.project_id = project_id
        self.week = week
        super().__init__(
            message=f"Project {project_id} has no assessment for week {week}",
            details={"project_id": project_id, "week": week},
        )

    def _get_default_user_message(self) -> str:
        return f"There is no assessment recorded for week {self.week}."


class DuplicatePeriodWarning(UserWarning):
    """
    Returned, not raised, when a project already has an assessment for the
    submitted week. Replacing it needs an explicit ``overwrite``.
    """

    status_code = 409

    def __init__(self, project_id: str, week: str):
        self.project_id = project_id
        self.week = week
        self.message = f"An assessment for week {week} already exists for project {project_id}"
        self.user_message = (
            f"An assessment for week {week} already exists. Do you want to overwrite it?"
        )
        super().__init__(self.message)


class DatabaseError(ProjectHealthError):
    status_code = 500
    default_user_message = "Unable to save your changes. Please try again."

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
        )


class DatabaseConnectionError(DatabaseError):
    status_code = 503
    default_user_message = "The project database is unavailable. Please try again shortly."

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, operation="connection", details=details)


class IntegrityError(DatabaseError):
    """A constraint on projects or assessments was violated."""

    status_code = 409

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.constraint = constraint
        super().__init__(
            message=message,
            operation="integrity_check",
            details=details or {"constraint": constraint},
        )

    def _get_default_user_message(self) -> str:
        if self.constraint == "unique":
            return "This item already exists."
        if self.constraint == "foreign_key":
            return "The project this refers to no longer exists. Please refresh and try again."
        return "Data integrity error. Please check your input and try again."


class ConfigurationError(ProjectHealthError):
    status_code = 500
    default_user_message = "Configuration error. Please check your settings."

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.config_key = config_key
        super().__init__(message=message, details=details or {"config_key": config_key})


class ExportError(ProjectHealthError):
    status_code = 500
    default_user_message = "Export failed. Please try again or choose a different format."

    def __init__(
        self,
        message: str,
        export_format: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.export_format = export_format
        super().__init__(message=message, details=details or {"export_format": export_format})


class RecordImportError(ProjectHealthError):
    """An imported project payload could not be turned into projects."""

    default_user_message = "Import failed. Please check your file and try again."

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.source = source
        super().__init__(message=message, details=details or {"source": source})


def _constraint_kind(error: sa_exc.IntegrityError) -> str | None:
    text = str(error.orig).lower()
    if "unique" in text or "duplicate" in text:
        return "unique"
    if "foreign key" in text:
        return "foreign_key"
    if "check constraint" in text:
        return "check"
    return None


def handle_database_error(e: Exception, operation: str = "database operation") -> DatabaseError:
    """
    Translate a SQLAlchemy failure into a tracker error.

    Example:
        >>> try:
        ...     session.flush()
        ... except SQLAlchemyError as e:
        ...     raise handle_database_error(e, "save project") from e
    """
    if isinstance(e, DatabaseError):
        return e
    if isinstance(e, sa_exc.IntegrityError):
        return IntegrityError(str(e.orig), constraint=_constraint_kind(e))
    if isinstance(e, (sa_exc.OperationalError, sa_exc.TimeoutError, sa_exc.DisconnectionError)):
        return DatabaseConnectionError(str(e))
    return DatabaseError(str(e), operation)


_BUILTIN_MESSAGES = {
    ValueError: "Invalid input provided. Please check your data and try again.",
    KeyError: "Required information is missing. Please check your input.",
    TypeError: "Incorrect data type provided. Please check your input format.",
}


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Message safe to show on the dashboard for any exception.

    Example:
        >>> create_user_friendly_error_message(ValidationError("week", "must look like 2024-W07"))
        'Invalid week: must look like 2024-W07'
    """
    if isinstance(error, (ProjectHealthError, DuplicatePeriodWarning)):
        return error.user_message
    for error_type, message in _BUILTIN_MESSAGES.items():
        if isinstance(error, error_type):
            return message
    return "An unexpected error occurred. Please try again or contact support."


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """Fields to pass as ``extra`` when logging a failure."""
    details: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }
    if isinstance(error, ProjectHealthError):
        details["user_message"] = error.user_message
        details["error_details"] = error.details
    return details
