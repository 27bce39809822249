"""
Centralized custom exception definitions for the visa letter backend.

Each exception inherits from BaseAppError, which itself extends Werkzeug's
HTTPException, allowing clean integration with Flask's error system and
JSON-formatted API responses.

Domain Groups:
--------------
1. Validation Errors (400)
2. Auth Errors (401/403)
3. Import Errors (422)
4. Database Errors (404-409)
5. Document Errors (409/500)
"""

from werkzeug.exceptions import HTTPException


class BaseAppError(HTTPException):
    """Root application error, base for all custom exceptions."""
    code = 500
    description = "Application error"

    def __init__(self, message=None, details=None, code=None):
        super().__init__(description=message or self.description)
        self.message = message or self.description
        self.details = details or {}
        if code:
            self.code = code

    def to_dict(self):
        """Serialize error info into a JSON-safe dictionary."""
        return {
            "status": "error",
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


# ==============================================================================
# 1. VALIDATION ERRORS (HTTP 400)
# ==============================================================================

class ValidationError(BaseAppError):
    code = 400
    description = "Validation error"


class RowValidationError(ValidationError):
    """A single import row is unusable; the batch records it and moves on."""
    description = "Invalid import row"


# ==============================================================================
# 2. AUTH ERRORS (HTTP 401 / 403)
# ==============================================================================

class AuthenticationError(BaseAppError):
    code = 401
    description = "Authentication required"


class PermissionDeniedError(BaseAppError):
    code = 403
    description = "Access denied"


# ==============================================================================
# 3. IMPORT ERRORS (HTTP 422)
# ==============================================================================

class ImportParsingError(BaseAppError):
    code = 422
    description = "Failed to parse import file"


# ==============================================================================
# 4. DATABASE ERRORS (HTTP 404-409)
# ==============================================================================

class DuplicateKeyError(BaseAppError):
    code = 409
    description = "Duplicate record detected"


class RecordNotFoundError(BaseAppError):
    code = 404
    description = "Requested record not found"


# ==============================================================================
# 5. DOCUMENT ERRORS (HTTP 409 / 500)
# ==============================================================================

class InvalidStatusError(BaseAppError):
    code = 409
    description = "Application is not in a state that allows this action"


class PdfGenerationError(BaseAppError):
    code = 500
    description = "Failed to generate PDF"


class TemplateNotFoundError(PdfGenerationError):
    description = "PDF template not found"


class ConfigurationError(BaseAppError):
    code = 500
    description = "Configuration missing or invalid"


def describe_validation_error(err) -> str:
    """Collapse a pydantic ``ValidationError`` into one readable sentence."""
    parts = []
    for item in err.errors(include_url=False, include_context=False, include_input=False):
        msg = str(item.get("msg", "")).removeprefix("Value error, ")
        loc = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Validation failed"
