"""
Custom exceptions for docshift.

This module provides a hierarchy of exceptions that enable type-safe error
handling throughout the application. All exceptions inherit from the base
DocshiftError for consistent catching.

Exception Hierarchy:
    DocshiftError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   └── ConfigValidationError
    ├── ChangeError
    │   ├── ChangeNotResolvedError
    │   ├── MissingBeforeError
    │   ├── MissingAfterError
    │   ├── MissingPatchOrInstructionError
    │   ├── DiffApplyError
    │   └── SerializationError
    └── DatabaseError
        ├── DatabaseNotConfiguredError
        └── DocumentNotFoundError

Usage:
    from docshift.exceptions import ChangeError

    try:
        change.resolve()
    except ChangeError as e:
        logger.warning(f"Could not resolve {e.doc_path}: {e}")
"""


class DocshiftError(Exception):
    """
    Base exception for all docshift errors.

    All custom exceptions in this application should inherit from this class.
    This enables catching all application-specific errors with a single except clause.
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(DocshiftError):
    """
    Base class for configuration-related errors.

    Raised when a change plan cannot be loaded, parsed, or validated.
    Should be caught and result in exit code 1 (configuration error).
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    Change plan file does not exist at the specified path.

    Example:
        raise ConfigFileNotFoundError("Change plan not found: plan.yaml")
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    Change plan is invalid (YAML syntax or schema validation failed).

    Should include details about which field(s) failed validation.

    Example:
        raise ConfigValidationError("  - changes.0.doc_path: doc_path cannot be empty")
    """

    pass


# ============================================================================
# Change Resolution Errors
# ============================================================================


class ChangeError(DocshiftError):
    """
    Base class for failures while resolving or executing a single Change.

    A ChangeError is terminal for the Change that raised it and is recorded
    in its error_state. It never affects other Changes in the same batch.

    Attributes:
        doc_path: str | None - Target document of the failing Change
    """

    def __init__(self, message: str, doc_path: str | None = None):
        super().__init__(message)
        self.doc_path = doc_path


class ChangeNotResolvedError(ChangeError):
    """
    Change has not been resolved successfully.

    This is the initial error_state of every Change. Raised by execute()
    when it is called before resolve() succeeded.
    """

    pass


class MissingBeforeError(ChangeError):
    """
    A resolution step needs the before state but none was supplied.

    Example:
        raise MissingBeforeError("Need before and patch/instruction to infer after.")
    """

    pass


class MissingAfterError(ChangeError):
    """
    A resolution step needs the after state but it could not be derived.
    """

    pass


class MissingPatchOrInstructionError(ChangeError):
    """
    Neither a patch mapping nor instruction text was supplied.
    """

    pass


class DiffApplyError(ChangeError):
    """
    Structural patch could not be parsed or applied.

    Raised for malformed patch text, invalid JSON pointers, failed test
    operations, and patches whose shape does not fit the target document.

    Example:
        raise DiffApplyError("Patch text is not valid JSON: Expecting value")
    """

    pass


class SerializationError(ChangeError):
    """
    A value cannot be represented in the canonical JSON-safe form.

    Should not occur for well-formed documents; indicates an unsupported
    value type was placed in before or patch.
    """

    pass


# ============================================================================
# Database Errors
# ============================================================================


class DatabaseError(DocshiftError):
    """
    Base class for database client errors.

    Errors raised by real database clients are propagated unchanged;
    these are raised by docshift itself and by InMemoryDatabase.
    """

    pass


class DatabaseNotConfiguredError(DatabaseError):
    """
    Change.execute() was called on a Change constructed without a client.
    """

    pass


class DocumentNotFoundError(DatabaseError):
    """
    Update targeted a document that does not exist.

    Example:
        raise DocumentNotFoundError("No document to update at users/alice")
    """

    pass
