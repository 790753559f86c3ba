"""Error taxonomy shared by the services and mapped to HTTP in the API."""


class DisciplineError(Exception):
    """Base class for all domain-level errors."""


class NotFound(DisciplineError):
    """A driver, action, booking or dispute does not exist.  Not retryable."""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidState(DisciplineError):
    """A precondition on the current state was not met.  Not retryable."""


class InvalidStateTransition(InvalidState):
    """Raised when a status change violates a state machine."""

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Cannot transition from {from_state} to {to_state}")


class TransientStoreFailure(DisciplineError):
    """The store was unavailable mid-transaction.

    Nothing was committed, so the whole call is safe to retry.
    """
