class ArenaError(Exception):
    """Base exception for Idea Arena.

    Subclasses carry the HTTP status and a stable machine-readable code so the
    API layer can render them without a mapping table.
    """

    status_code: int = 500
    code: str = "arena_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class Unauthenticated(ArenaError):
    """Authentication required."""

    status_code = 401
    code = "unauthenticated"


class Unverified(ArenaError):
    """Email verification required."""

    status_code = 403
    code = "unverified"


class NoCreditsRemaining(ArenaError):
    """No remaining runs available."""

    status_code = 403
    code = "no_credits_remaining"


class ValidationError(ArenaError):
    """Request failed validation."""

    status_code = 400
    code = "validation_error"


class MissingRequiredField(ValidationError):
    """Missing required fields."""

    code = "missing_required_field"

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Missing required fields: {', '.join(fields)}")


class NotFound(ArenaError):
    """Resource not found or access denied."""

    status_code = 404
    code = "not_found"


class OutOfOrderStageAdvancement(ArenaError):
    """A previous stage must be completed first."""

    status_code = 409
    code = "out_of_order_stage"

    def __init__(self, requested: str, blocking: str):
        self.requested = requested
        self.blocking = blocking
        super().__init__(f"Stage '{requested}' cannot start before '{blocking}' is completed")


class StageAlreadyCompleted(ArenaError):
    """Stage is already completed."""

    status_code = 409
    code = "stage_already_completed"


class RateLimitExceeded(ArenaError):
    """Rate limit exceeded."""

    status_code = 429
    code = "rate_limited"

    def __init__(self, limit: int, retry_after: int):
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded ({limit} requests per window). Retry in {retry_after}s.")


class UpstreamModelFailure(ArenaError):
    """The language-model service failed to produce a response."""

    status_code = 502
    code = "upstream_model_failure"


class MalformedStructuredOutput(UpstreamModelFailure):
    """Raised when structured model output does not match the declared schema.

    Keeps the raw text so callers can build a fallback from it.
    """

    code = "malformed_structured_output"

    def __init__(self, schema_name: str, raw_text: str, reason: str = ""):
        self.schema_name = schema_name
        self.raw_text = raw_text
        self.reason = reason
        super().__init__(f"Model output did not match '{schema_name}': {reason}".rstrip(": "))


class NoServicesConfigured(ArenaError):
    """No evaluator personas are configured for this tier."""

    status_code = 503
    code = "no_services_configured"


class ConcurrentStageTurn(ArenaError):
    """Another message for this stage is being processed."""

    status_code = 409
    code = "concurrent_stage_turn"
