"""Error codes and user-friendly messages.

This module defines the error catalog for ledger ingestion and category
management. Each error has:
- code: Unique identifier
- message: Technical description (for logs)
- user_message: User-friendly explanation
- suggestion: Actionable guidance for the user
- retry_allowed: Whether the error is retryable
"""

ERROR_CATALOG: dict[str, dict] = {
    # Import pipeline
    "IMPORT_001": {
        "code": "IMPORT_001",
        "message": "File could not be read as a table or contains no rows",
        "user_message": "We couldn't read any rows from this file.",
        "suggestion": "Export the statement again as CSV or Excel (.xlsx) and retry.",
        "retry_allowed": True,
    },
    "IMPORT_002": {
        "code": "IMPORT_002",
        "message": "File failed validation for the selected format",
        "user_message": "This file doesn't look like the selected bank format.",
        "suggestion": "Pick a different format or map the columns manually.",
        "retry_allowed": True,
    },
    "IMPORT_003": {
        "code": "IMPORT_003",
        "message": "Unknown source format requested",
        "user_message": "We don't support that statement format.",
        "suggestion": "Choose one of the listed formats or use a custom column mapping.",
        "retry_allowed": False,
    },
    "IMPORT_004": {
        "code": "IMPORT_004",
        "message": "Column mapping is required for custom imports",
        "user_message": "Tell us which columns hold the date, description and amounts.",
        "suggestion": "Complete the column mapping and try again.",
        "retry_allowed": True,
    },
    "IMPORT_005": {
        "code": "IMPORT_005",
        "message": "Import session has unresolved conflicts or duplicates",
        "user_message": "Some transactions still need your attention before importing.",
        "suggestion": "Resolve every conflict and decide on every duplicate, then import.",
        "retry_allowed": True,
    },
    "IMPORT_006": {
        "code": "IMPORT_006",
        "message": "Import batch not found",
        "user_message": "We couldn't find this import.",
        "suggestion": "Refresh the import history and try again.",
        "retry_allowed": False,
    },
    # Saved column mappings
    "TPL_001": {
        "code": "TPL_001",
        "message": "Column mapping template not found",
        "user_message": "We couldn't find this saved column mapping.",
        "suggestion": "Refresh the list of saved mappings and try again.",
        "retry_allowed": False,
    },
    "TPL_002": {
        "code": "TPL_002",
        "message": "Invalid column mapping template",
        "user_message": "This column mapping can't be saved.",
        "suggestion": "Give the mapping a unique name and pick the date, description and amount columns.",
        "retry_allowed": False,
    },
    # Categories
    "CAT_001": {
        "code": "CAT_001",
        "message": "Keyword already assigned to another category",
        "user_message": "That keyword is already used by another category.",
        "suggestion": "Remove it from the other category first, or pick a more specific keyword.",
        "retry_allowed": False,
    },
    "CAT_002": {
        "code": "CAT_002",
        "message": "System category cannot be modified this way",
        "user_message": "Built-in categories can't be renamed or deleted.",
        "suggestion": "Create a new category instead.",
        "retry_allowed": False,
    },
    "CAT_003": {
        "code": "CAT_003",
        "message": "Category not found",
        "user_message": "We couldn't find this category.",
        "suggestion": "Please refresh and try again.",
        "retry_allowed": False,
    },
    "CAT_004": {
        "code": "CAT_004",
        "message": "Invalid category name",
        "user_message": "Category names must be non-empty and unique.",
        "suggestion": "Choose a different name.",
        "retry_allowed": False,
    },
    "DB_001": {
        "code": "DB_001",
        "message": "Database transaction failed",
        "user_message": "We couldn't save your changes due to a database error.",
        "suggestion": "Please try again in a few moments.",
        "retry_allowed": True,
    },
    "DB_002": {
        "code": "DB_002",
        "message": "Resource already exists",
        "user_message": "This record already exists",
        "suggestion": "Please check if the record was already created",
        "retry_allowed": False,
    },
    "SYS_001": {
        "code": "SYS_001",
        "message": "Internal server error",
        "user_message": "An unexpected error occurred",
        "suggestion": "Please try again later or contact support",
        "retry_allowed": True,
    },
    "VAL_001": {
        "code": "VAL_001",
        "message": "Request data failed validation",
        "user_message": "Invalid input data",
        "suggestion": "Please check your input and try again",
        "retry_allowed": True,
    },
    # API-specific errors
    "API_001": {
        "code": "API_001",
        "message": "Invalid file type uploaded",
        "user_message": "Only CSV and Excel (.xlsx) files are supported.",
        "suggestion": "Export your statement as CSV or Excel and upload it again.",
        "retry_allowed": False,
    },
    "API_002": {
        "code": "API_002",
        "message": "File size exceeds maximum limit",
        "user_message": "The file is too large.",
        "suggestion": "Split the export into smaller date ranges and upload each one.",
        "retry_allowed": False,
    },
}


def get_error(error_code: str) -> dict:
    """Get error definition by code.

    Unknown codes resolve to a generic definition instead of raising.
    """
    if error_code not in ERROR_CATALOG:
        return {
            "code": "UNKNOWN",
            "message": f"Unknown error code: {error_code}",
            "user_message": "An unexpected error occurred.",
            "suggestion": "Please try again. Contact support if the problem persists.",
            "retry_allowed": True,
        }
    return ERROR_CATALOG[error_code]


def get_user_message(error_code: str) -> str:
    """Get user-friendly message for an error code."""
    return get_error(error_code)["user_message"]


def get_suggestion(error_code: str) -> str:
    """Get actionable suggestion for an error code."""
    return get_error(error_code)["suggestion"]


def is_retryable(error_code: str) -> bool:
    """Check if an error is retryable."""
    return get_error(error_code)["retry_allowed"]
