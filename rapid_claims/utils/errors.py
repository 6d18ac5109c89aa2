"""Error handling utilities for the claim agent workflow."""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum


class ErrorType(Enum):
    """Enumeration of error types in the claim agent workflow."""

    # Bedrock API Errors
    BEDROCK_RATE_LIMIT = "BEDROCK_RATE_LIMIT"
    BEDROCK_TIMEOUT = "BEDROCK_TIMEOUT"
    BEDROCK_AUTH_ERROR = "BEDROCK_AUTH_ERROR"
    BEDROCK_MODEL_ERROR = "BEDROCK_MODEL_ERROR"
    BEDROCK_INVALID_REQUEST = "BEDROCK_INVALID_REQUEST"
    BEDROCK_SERVICE_ERROR = "BEDROCK_SERVICE_ERROR"

    # Evidence Ingestion Errors
    INGESTION_MISSING = "INGESTION_MISSING"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    EMPTY_EVIDENCE = "EMPTY_EVIDENCE"

    # Damage Analysis Errors
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    ANALYSIS_MALFORMED_RESPONSE = "ANALYSIS_MALFORMED_RESPONSE"
    ANALYSIS_UNSUITABLE_CONTENT = "ANALYSIS_UNSUITABLE_CONTENT"

    # Handshake Protocol Errors
    PROTOCOL_STALE_MESSAGE = "PROTOCOL_STALE_MESSAGE"
    PROTOCOL_ORDER_VIOLATION = "PROTOCOL_ORDER_VIOLATION"

    # Configuration Errors
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # General Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


USER_FACING_ANALYSIS_MESSAGE = (
    "Verification failed. Please ensure the image/video clearly shows the damage."
)


@dataclass
class ErrorContext:
    """
    Context information for errors in the claim agent workflow.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        recoverable: Whether the error can be recovered from
        fallback_action: Optional description of fallback action taken
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    recoverable: bool
    fallback_action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to dictionary for logging/serialization."""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "fallback_action": self.fallback_action,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class ClaimsProcessingError(Exception):
    """
    Base exception for all claim agent errors.

    Attributes:
        context: ErrorContext with detailed error information
    """

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    @property
    def error_type(self) -> ErrorType:
        return self.context.error_type

    def __str__(self) -> str:
        base = f"{self.context.error_type.value}: {self.context.message}"
        if self.context.fallback_action:
            base += f" (Fallback: {self.context.fallback_action})"
        return base

    def to_dict(self) -> Dict[str, Any]:
        return self.context.to_dict()


class BedrockAPIError(ClaimsProcessingError):
    """Exception for AWS Bedrock API errors."""

    @classmethod
    def from_client_error(
        cls,
        error: Exception,
        operation: str,
        recoverable: bool = False,
        fallback_action: Optional[str] = None
    ) -> "BedrockAPIError":
        """
        Create BedrockAPIError from boto3 ClientError.

        Args:
            error: Original boto3 ClientError
            operation: Description of operation that failed
            recoverable: Whether error is recoverable
            fallback_action: Optional fallback action description

        Returns:
            BedrockAPIError instance
        """
        error_code = "Unknown"
        error_message = str(error)

        if hasattr(error, 'response'):
            error_info = error.response.get("Error", {})
            error_code = error_info.get("Code", "Unknown")
            error_message = error_info.get("Message", str(error))

        error_type_map = {
            "ThrottlingException": ErrorType.BEDROCK_RATE_LIMIT,
            "TooManyRequestsException": ErrorType.BEDROCK_RATE_LIMIT,
            "RequestTimeout": ErrorType.BEDROCK_TIMEOUT,
            "RequestTimeoutException": ErrorType.BEDROCK_TIMEOUT,
            "ModelTimeoutException": ErrorType.BEDROCK_TIMEOUT,
            "UnauthorizedException": ErrorType.BEDROCK_AUTH_ERROR,
            "AccessDeniedException": ErrorType.BEDROCK_AUTH_ERROR,
            "ValidationException": ErrorType.BEDROCK_INVALID_REQUEST,
            "ModelNotReadyException": ErrorType.BEDROCK_MODEL_ERROR,
            "ModelErrorException": ErrorType.BEDROCK_MODEL_ERROR,
            "ServiceUnavailableException": ErrorType.BEDROCK_SERVICE_ERROR,
            "InternalServerException": ErrorType.BEDROCK_SERVICE_ERROR,
        }

        context = ErrorContext(
            error_type=error_type_map.get(error_code, ErrorType.BEDROCK_SERVICE_ERROR),
            message=f"Bedrock API error during {operation}: {error_message}",
            recoverable=recoverable,
            fallback_action=fallback_action,
            details={
                "error_code": error_code,
                "operation": operation
            },
            original_exception=error
        )

        return cls(context)


class IngestionError(ClaimsProcessingError):
    """Exception for evidence that cannot enter the workflow."""

    @classmethod
    def no_evidence(cls) -> "IngestionError":
        context = ErrorContext(
            error_type=ErrorType.INGESTION_MISSING,
            message="No evidence file was supplied",
            recoverable=True,
            fallback_action="Ignore upload"
        )
        return cls(context)

    @classmethod
    def empty_evidence(cls, filename: str) -> "IngestionError":
        context = ErrorContext(
            error_type=ErrorType.EMPTY_EVIDENCE,
            message=f"Evidence file '{filename}' is empty",
            recoverable=True,
            fallback_action="Ignore upload",
            details={"filename": filename}
        )
        return cls(context)

    @classmethod
    def unsupported_media(cls, filename: str, media_type: str) -> "IngestionError":
        """
        Create error for evidence that is neither an image nor a video.

        Args:
            filename: Name of the uploaded file
            media_type: Media type reported by the uploader

        Returns:
            IngestionError instance
        """
        context = ErrorContext(
            error_type=ErrorType.UNSUPPORTED_MEDIA_TYPE,
            message=f"Evidence '{filename}' has unsupported media type '{media_type}'",
            recoverable=True,
            fallback_action="Ignore upload",
            details={"filename": filename, "media_type": media_type}
        )
        return cls(context)


class AnalysisError(ClaimsProcessingError):
    """Exception for vision analysis failures and unsuitable evidence."""

    @property
    def user_message(self) -> str:
        """Message shown to the claimant when the session falls back to IDLE."""
        return USER_FACING_ANALYSIS_MESSAGE

    @classmethod
    def collaborator_failed(
        cls,
        media_type: str,
        error: Exception,
        fallback_action: Optional[str] = None
    ) -> "AnalysisError":
        """
        Create error for a vision collaborator that could not be reached or failed.

        Args:
            media_type: Media type of the analysed evidence
            error: Original exception
            fallback_action: Optional fallback action

        Returns:
            AnalysisError instance
        """
        error_type = ErrorType.ANALYSIS_FAILED
        if isinstance(error, ClaimsProcessingError):
            error_type = error.error_type

        context = ErrorContext(
            error_type=error_type,
            message=f"Damage analysis failed for {media_type} evidence: {str(error)}",
            recoverable=True,
            fallback_action=fallback_action or "Return to IDLE and await a fresh upload",
            details={"media_type": media_type},
            original_exception=error
        )
        return cls(context)

    @classmethod
    def malformed_response(cls, reason: str, raw_text: str = "") -> "AnalysisError":
        context = ErrorContext(
            error_type=ErrorType.ANALYSIS_MALFORMED_RESPONSE,
            message=f"Vision collaborator returned a malformed report: {reason}",
            recoverable=True,
            fallback_action="Return to IDLE and await a fresh upload",
            details={"response_preview": raw_text[:200]}
        )
        return cls(context)

    @classmethod
    def unsuitable_content(cls, reason: str) -> "AnalysisError":
        context = ErrorContext(
            error_type=ErrorType.ANALYSIS_UNSUITABLE_CONTENT,
            message=f"Evidence is not suitable for damage assessment: {reason}",
            recoverable=True,
            fallback_action="Return to IDLE and await a fresh upload",
            details={"reason": reason}
        )
        return cls(context)


class ProtocolInvariantViolation(ClaimsProcessingError):
    """Internal-only exception for handshake messages that break the protocol."""

    @classmethod
    def stale_message(cls, expected_session: int, actual_session: int) -> "ProtocolInvariantViolation":
        context = ErrorContext(
            error_type=ErrorType.PROTOCOL_STALE_MESSAGE,
            message=(
                f"Handshake message for session {expected_session} arrived after "
                f"reset (live session is {actual_session})"
            ),
            recoverable=True,
            fallback_action="Discard message",
            details={"message_session": expected_session, "live_session": actual_session}
        )
        return cls(context)

    @classmethod
    def order_violation(cls, message: str, details: Optional[Dict[str, Any]] = None) -> "ProtocolInvariantViolation":
        context = ErrorContext(
            error_type=ErrorType.PROTOCOL_ORDER_VIOLATION,
            message=message,
            recoverable=False,
            details=details
        )
        return cls(context)


class ConfigurationError(ClaimsProcessingError):
    """Exception for missing or invalid configuration."""

    @classmethod
    def missing(cls, config_path: str) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_MISSING,
            message=f"Configuration file not found at '{config_path}'",
            recoverable=False,
            details={"config_path": config_path}
        )
        return cls(context)

    @classmethod
    def invalid(cls, key: str, value: Any, reason: str) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_INVALID,
            message=f"Invalid configuration value for '{key}' ({value!r}): {reason}",
            recoverable=False,
            details={"key": key, "value": value}
        )
        return cls(context)


def handle_analysis_error(
    error: Exception,
    media_type: str,
    logger,
    fallback_action: Optional[str] = None
) -> None:
    """
    Handle vision analysis errors with logging and wrap them for the controller.

    AnalysisError instances are re-raised untouched; anything else is wrapped
    with context so the workflow sees a single failure type.

    Args:
        error: Original exception from the analysis call
        media_type: Media type of the analysed evidence
        logger: Logger instance for error logging
        fallback_action: Optional fallback action description

    Raises:
        AnalysisError: Wrapped error with context
    """
    if isinstance(error, AnalysisError):
        logger.warning(f"Recoverable analysis error: {error}")
        raise error

    analysis_error = AnalysisError.collaborator_failed(
        media_type=media_type,
        error=error,
        fallback_action=fallback_action
    )

    if isinstance(error, BedrockAPIError):
        logger.warning(f"Bedrock call failed during analysis: {analysis_error}")
    else:
        logger.error(f"Unexpected analysis failure: {analysis_error}")

    raise analysis_error from error
