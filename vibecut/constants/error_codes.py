"""Error codes dictionary for the editor engine.

Single source of truth for every error code, its retryability and the
suggested recovery action. Used by ``VibecutError.to_error_info`` and by the
HTTP exception handlers to build machine-readable failures.
"""

from typing import Any, TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_action: str
    suggested_command: str
    suggested_fix: str
    parameters: dict[str, Any]


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Validation errors (not retryable, fix input)
    # ==========================================================================
    "VALIDATION_ERROR": {
        "retryable": False,
    },
    "MISSING_VALUE": {
        "retryable": False,
        "suggested_fix": "Pass a value after the option, e.g. --name \"Intro\"",
    },
    "UNKNOWN_OPTION": {
        "retryable": False,
        "suggested_action": "show_usage",
        "suggested_command": "/help",
    },
    "INVALID_FIELD_VALUE": {
        "retryable": False,
    },
    "OUT_OF_BOUNDS": {
        "retryable": False,
    },
    "MISSING_REQUIRED_FIELD": {
        "retryable": False,
    },
    "WRONG_ELEMENT_TYPE": {
        "retryable": False,
        "suggested_action": "list_elements",
        "suggested_command": "/ls-page",
    },
    "DUPLICATE_ID": {
        "retryable": False,
        "suggested_fix": "Choose an id that is not used by another page",
    },
    "NO_UPDATES_SPECIFIED": {
        "retryable": False,
    },
    # ==========================================================================
    # Resource errors (retryable after refreshing ids)
    # ==========================================================================
    "PAGE_NOT_FOUND": {
        "retryable": True,
        "suggested_action": "refresh_ids",
        "suggested_command": "/ls-page",
    },
    "ELEMENT_NOT_FOUND": {
        "retryable": True,
        "suggested_action": "refresh_ids",
        "suggested_command": "/ls-page",
    },
    "AUDIO_NOT_FOUND": {
        "retryable": True,
        "suggested_action": "refresh_ids",
        "suggested_command": "/ls-comp",
    },
    "NOTE_NOT_FOUND": {
        "retryable": True,
        "suggested_action": "refresh_ids",
        "suggested_command": "/ls-notes",
    },
    "UNKNOWN_COMMAND": {
        "retryable": False,
        "suggested_action": "show_usage",
        "suggested_command": "/help",
    },
    "SHARED_PROJECT_NOT_FOUND": {
        "retryable": False,
    },
    "TOOL_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Call one of the tools listed in the request",
    },
    # ==========================================================================
    # Precondition errors (fix state first)
    # ==========================================================================
    "PRECONDITION_FAILED": {
        "retryable": False,
    },
    "NO_PROJECT": {
        "retryable": False,
        "suggested_action": "reset_project",
        "suggested_command": "/reset",
    },
    "NO_PAGE_SELECTED": {
        "retryable": True,
        "suggested_action": "select_page",
        "suggested_fix": "Select a page first, or create one with /new-page",
    },
    "NO_ELEMENT_SELECTED": {
        "retryable": True,
        "suggested_action": "select_element",
        "suggested_fix": "Select an element or pass --id",
    },
    "LAST_PAGE": {
        "retryable": False,
        "suggested_fix": "A composition must keep at least one page",
    },
    "NOTHING_TO_UNDO": {
        "retryable": False,
    },
    "NOTHING_TO_REDO": {
        "retryable": False,
    },
    # ==========================================================================
    # Payload errors
    # ==========================================================================
    "INVALID_COMPOSITION": {
        "retryable": False,
        "suggested_fix": "Send a JSON object with a 'pages' array",
    },
    # ==========================================================================
    # Collaborator errors (retryable)
    # ==========================================================================
    "COLLABORATOR_ERROR": {
        "retryable": True,
    },
    "STORAGE_ERROR": {
        "retryable": True,
    },
    "SHARE_UPLOAD_FAILED": {
        "retryable": True,
        "suggested_action": "retry_share",
        "suggested_command": "/share --yes",
    },
    "ENCRYPTION_FAILED": {
        "retryable": False,
    },
    "RENDERER_ERROR": {
        "retryable": True,
    },
    "AI_PROVIDER_ERROR": {
        "retryable": True,
        "suggested_fix": "Check the AI API key and try again",
    },
    "RENDERER_UNAVAILABLE": {
        "retryable": False,
    },
    # ==========================================================================
    # Server errors
    # ==========================================================================
    "INTERNAL_ERROR": {
        "retryable": True,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification for a given code.

    Args:
        code: Error code string

    Returns:
        ErrorCodeSpec dict, or empty dict if code not found
    """
    return ERROR_CODES.get(code, {})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    spec = get_error_spec(code)
    return spec.get("retryable", False)
