"""Custom exception hierarchy for docqa.

All application exceptions inherit from :class:`DocQAError`, which carries
an optional ``provider_name`` so error handlers can tell which external
service (e.g. "gemini", "anthropic", "blob-store") caused the failure.

The hierarchy follows the pipeline's failure categories:

    DocQAError  (base -- catch-all for any docqa error)
    +-- ConfigurationError       (missing credentials / no active prompt)
    +-- NotFoundError            (missing blob, job, file or artifact)
    +-- LLMError                 (provider call failed or returned nothing)
    +-- ExtractionError          (document could not be turned into content)
    |   +-- DocumentConversionError  (word-processing -> PDF normalization)
    +-- QAGenerationError        (a chunk's QA pairs could not be produced)
    +-- AuthenticationError      (no caller identity supplied)
    +-- AuthorizationError       (tenant mismatch / admin required)
    +-- InvalidRequestError      (malformed caller input)
    +-- InvalidTransitionError   (state machine refused the transition)
    +-- StorageError             (blob store read/write failure)

Each class declares ``status_code`` so the API error middleware can map it
onto the ``{success: false, error, status}`` envelope without a lookup table.
"""


class DocQAError(Exception):
    """Base exception for all docqa errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets
    for structured log output, e.g. ``[gemini] No content returned``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration / lookup errors
# ---------------------------------------------------------------------------

class ConfigurationError(DocQAError):
    """Raised when credentials or an active prompt configuration are missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(DocQAError):
    """Raised when a blob, job, file, QA pair or artifact does not exist."""

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Provider / extraction errors
# ---------------------------------------------------------------------------

class LLMError(DocQAError):
    """Raised when an LLM API call fails or returns an unusable response."""

    status_code = 502

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(DocQAError):
    """Raised when a source document cannot be turned into extracted content."""

    status_code = 502

    def __init__(
        self,
        message: str = "Document extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentConversionError(ExtractionError):
    """Raised when a word-processing document cannot be normalized to PDF."""

    status_code = 422

    def __init__(
        self,
        message: str = "Document conversion failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class QAGenerationError(DocQAError):
    """Raised when a chunk's question/answer pairs cannot be generated."""

    def __init__(
        self,
        message: str = "QA generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Caller errors
# ---------------------------------------------------------------------------

class AuthorizationError(DocQAError):
    """Raised when the caller's tenant does not own the requested record."""

    status_code = 403

    def __init__(
        self,
        message: str = "Forbidden",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidRequestError(DocQAError):
    """Raised when caller input is malformed or out of range."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidTransitionError(DocQAError):
    """Raised when a record's current state does not allow the requested change."""

    status_code = 409

    def __init__(
        self,
        message: str = "Invalid state transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class StorageError(DocQAError):
    """Raised when the blob store cannot read or write a key."""

    def __init__(
        self,
        message: str = "Blob store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class AuthenticationError(DocQAError):
    """Raised when the gateway did not supply a caller identity."""

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
