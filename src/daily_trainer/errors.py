"""Error types raised by the plan engine.

Allocation and state-machine failures are typed so callers never need
to match on message strings. Gateway failures are wrapped in
TransientGatewayError and are safe to retry because every mutating
operation is idempotent or clamp-bounded.
"""


class PlanEngineError(Exception):
    """Base exception for plan engine errors."""

    pass


class NoCandidateExercises(PlanEngineError):
    """Raised when no exercise survives the survey filters."""

    def __init__(self, message: str = "No candidate exercises match the survey filters"):
        super().__init__(message)


class PlanHasProgress(PlanEngineError):
    """Raised when regeneration would overwrite recorded progress.

    Attributes:
        plan_id: Plan that was left untouched
        existing_count: Number of items already in the plan
        target_count: Requested number of items
    """

    def __init__(
        self,
        plan_id: int | None = None,
        existing_count: int = 0,
        target_count: int = 0,
    ) -> None:
        self.plan_id = plan_id
        self.existing_count = existing_count
        self.target_count = target_count
        super().__init__(
            f"Plan already has progress ({existing_count} items, target {target_count}); "
            "not regenerating"
        )


class NotFound(PlanEngineError):
    """Raised when a plan or item does not exist."""

    pass


class Forbidden(PlanEngineError):
    """Raised when a plan or item belongs to another owner."""

    pass


class InvalidTransition(PlanEngineError):
    """Raised when an item cannot move to the requested status."""

    pass


class ConcurrentUpdate(PlanEngineError):
    """Raised when a compare-and-swap update keeps losing to another writer."""

    pass


class TransientGatewayError(PlanEngineError):
    """Raised when a persistence or catalog gateway fails.

    Attributes:
        operation: Gateway operation that failed
        original_error: Underlying exception
    """

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"Gateway operation '{operation}' failed: {original_error}")
