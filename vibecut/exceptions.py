"""Custom exceptions for the vibecut editor engine.

Every failure a command, tool or HTTP route can report is one of these. They
carry a machine-readable code (see ``constants.error_codes``) so the command
registry and the API layer can turn them into ``ErrorInfo`` payloads.
"""

from vibecut.constants.error_codes import get_error_spec
from vibecut.schemas.envelope import ErrorInfo, ErrorLocation, SuggestedAction


class VibecutError(Exception):
    """Base exception for all editor errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        location: ErrorLocation | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.location = location
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for command results and API responses."""
        spec = get_error_spec(self.code)

        suggested_actions: list[SuggestedAction] = []
        if "suggested_action" in spec:
            suggested_actions.append(
                SuggestedAction(
                    action=spec["suggested_action"],
                    command=spec.get("suggested_command"),
                    parameters=spec.get("parameters", {}),
                )
            )

        return ErrorInfo(
            code=self.code,
            message=self.message,
            location=self.location,
            retryable=spec.get("retryable", False),
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
            suggested_actions=suggested_actions,
        )


# =============================================================================
# Validation Errors (422) - malformed, missing or out-of-range arguments
# =============================================================================


class ValidationError(VibecutError):
    """Base class for argument validation errors. Nothing is mutated."""

    code = "VALIDATION_ERROR"
    status_code = 422
    message = "Invalid arguments"


class MissingValueError(ValidationError):
    """An option that expects a value was the last token."""

    code = "MISSING_VALUE"

    def __init__(self, option: str):
        super().__init__(
            f"Option {option} requires a value",
            location=ErrorLocation(option=option),
        )


class UnknownOptionError(ValidationError):
    """A flag that the command does not accept."""

    code = "UNKNOWN_OPTION"

    def __init__(self, option: str, usage: str | None = None):
        message = f"Unknown option: {option}"
        if usage:
            message += f"\nUsage: `{usage}`"
        super().__init__(message, location=ErrorLocation(option=option))


class InvalidFieldValueError(ValidationError):
    """A value that cannot be parsed for its field."""

    code = "INVALID_FIELD_VALUE"

    def __init__(self, field: str, value: object, expected: str | None = None):
        message = f"Invalid {field}: {value!r}"
        if expected:
            message += f" ({expected})"
        super().__init__(message, location=ErrorLocation(field=field))


class OutOfBoundsError(ValidationError):
    """A numeric value outside its allowed range."""

    code = "OUT_OF_BOUNDS"

    def __init__(
        self,
        field: str,
        value: float,
        minimum: float | None = None,
        maximum: float | None = None,
    ):
        if minimum is not None and maximum is not None:
            bounds = f"between {minimum:g} and {maximum:g}"
        elif minimum is not None:
            bounds = f"at least {minimum:g}"
        else:
            bounds = f"at most {maximum:g}"
        super().__init__(
            f"{field} must be {bounds} (got {value:g})",
            location=ErrorLocation(field=field),
        )


class MissingRequiredFieldError(ValidationError):
    """Required field is missing."""

    code = "MISSING_REQUIRED_FIELD"

    def __init__(self, field: str, hint: str | None = None):
        super().__init__(
            f"Missing required field: {field}",
            location=ErrorLocation(field=field),
            suggested_fix=hint,
        )


class WrongElementTypeError(ValidationError):
    """The target element's variant does not match the command."""

    code = "WRONG_ELEMENT_TYPE"

    def __init__(self, element_id: str, expected: str, actual: str):
        super().__init__(
            f"Element {element_id} is a {actual} element, not {expected}",
            location=ErrorLocation(element_id=element_id),
        )


class DuplicateIdError(ValidationError):
    """The requested id is already used in the project."""

    code = "DUPLICATE_ID"

    def __init__(self, entity_id: str, kind: str = "page"):
        super().__init__(
            f"A {kind} with id '{entity_id}' already exists",
            location=ErrorLocation(field="id"),
        )


class NoUpdatesSpecifiedError(ValidationError):
    """An update command was called without any field to change."""

    code = "NO_UPDATES_SPECIFIED"
    message = "No updates specified"

    def __init__(self, usage: str | None = None):
        message = self.message
        if usage:
            message += f"\nUsage: `{usage}`"
        super().__init__(message)


# =============================================================================
# Not Found Errors (404)
# =============================================================================


class NotFoundError(VibecutError):
    """Base class for references to entities that do not exist."""

    code = "NOT_FOUND"
    status_code = 404
    message = "Not found"


class PageNotFoundError(NotFoundError):
    """Page not found."""

    code = "PAGE_NOT_FOUND"
    message = "Page not found"

    def __init__(self, page_id: str | None = None):
        message = f"Page not found: {page_id}" if page_id else self.message
        location = ErrorLocation(page_id=page_id) if page_id else None
        super().__init__(message, location=location)


class ElementNotFoundError(NotFoundError):
    """Element not found."""

    code = "ELEMENT_NOT_FOUND"
    message = "Element not found"

    def __init__(self, element_id: str | None = None):
        message = f"Element not found: {element_id}" if element_id else self.message
        location = ErrorLocation(element_id=element_id) if element_id else None
        super().__init__(message, location=location)


class AudioNotFoundError(NotFoundError):
    """Audio track not found."""

    code = "AUDIO_NOT_FOUND"
    message = "Audio not found"

    def __init__(self, audio_id: str | None = None):
        message = f"Audio not found: {audio_id}" if audio_id else self.message
        location = ErrorLocation(audio_id=audio_id) if audio_id else None
        super().__init__(message, location=location)


class NoteNotFoundError(NotFoundError):
    """Note not found."""

    code = "NOTE_NOT_FOUND"
    message = "Note not found"

    def __init__(self, note_id: str | None = None):
        message = f"Note not found: {note_id}" if note_id else self.message
        super().__init__(message)


class UnknownCommandError(NotFoundError):
    """No command is registered under the given name."""

    code = "UNKNOWN_COMMAND"

    def __init__(self, name: str, usages: list[str], suggestions: list[str] | None = None):
        lines = [f"Unknown command: /{name}"]
        if suggestions:
            lines.append("Did you mean: " + ", ".join(f"/{s}" for s in suggestions) + "?")
        lines.append("")
        lines.append("Available commands:")
        lines.extend(f"• `{usage}`" for usage in usages)
        self.usages = usages
        self.suggestions = suggestions or []
        super().__init__("\n".join(lines))


class SharedProjectNotFoundError(NotFoundError):
    """The share service has no payload for this id."""

    code = "SHARED_PROJECT_NOT_FOUND"

    def __init__(self, share_id: str):
        super().__init__(f"Shared project not found: {share_id}")


class ToolNotFoundError(NotFoundError):
    code = "TOOL_NOT_FOUND"
    message = "Tool not found"

    def __init__(self, name: str):
        super().__init__(f"Tool not found: {name}")


# =============================================================================
# Precondition Errors (409) - the request is valid but the state is not
# =============================================================================


class PreconditionError(VibecutError):
    """Base class for state preconditions that do not hold."""

    code = "PRECONDITION_FAILED"
    status_code = 409
    message = "Precondition failed"


class NoProjectError(PreconditionError):
    code = "NO_PROJECT"
    message = "No project loaded"


class NoPageSelectedError(PreconditionError):
    code = "NO_PAGE_SELECTED"
    message = "No page selected"


class NoElementSelectedError(PreconditionError):
    code = "NO_ELEMENT_SELECTED"
    message = "No element selected"


class LastPageError(PreconditionError):
    code = "LAST_PAGE"
    message = "Cannot delete every page: a composition needs at least one page"


class NothingToUndoError(PreconditionError):
    code = "NOTHING_TO_UNDO"
    message = "Nothing to undo"


class NothingToRedoError(PreconditionError):
    code = "NOTHING_TO_REDO"
    message = "Nothing to redo"


# =============================================================================
# Invalid Composition (400) - payload cannot be parsed at all
# =============================================================================


class InvalidCompositionError(VibecutError):
    """Structurally unparseable project or composition payload."""

    code = "INVALID_COMPOSITION"
    status_code = 400
    message = "Invalid composition"

    def __init__(self, detail: str | None = None):
        message = f"Invalid composition: {detail}" if detail else self.message
        super().__init__(message)


# =============================================================================
# Collaborator Errors (502) - storage, network or crypto failures
# =============================================================================


class CollaboratorError(VibecutError):
    """Base class for failures surfaced from an external dependency."""

    code = "COLLABORATOR_ERROR"
    status_code = 502
    message = "External service failed"


class StorageError(CollaboratorError):
    code = "STORAGE_ERROR"
    message = "File storage operation failed"


class ShareUploadError(CollaboratorError):
    code = "SHARE_UPLOAD_FAILED"
    message = "Failed to upload shared project"


class EncryptionError(CollaboratorError):
    code = "ENCRYPTION_FAILED"
    message = "Encryption failed"


class RendererError(CollaboratorError):
    code = "RENDERER_ERROR"
    message = "Video rendering failed"


class RendererUnavailableError(CollaboratorError):
    code = "RENDERER_UNAVAILABLE"
    status_code = 503
    message = "No video renderer is configured"


class AIProviderError(CollaboratorError):
    code = "AI_PROVIDER_ERROR"
    message = "AI provider request failed"
