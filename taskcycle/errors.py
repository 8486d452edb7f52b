"""Error kinds raised by the task lifecycle engine."""


class TaskCycleError(Exception):
    """Base class for engine errors."""


class InvalidPattern(TaskCycleError, ValueError):
    """Unknown recurrence pattern."""

    def __init__(self, pattern):
        self.pattern = pattern
        super().__init__(f"Invalid recurrence pattern: {pattern}")


class TaskNotFound(TaskCycleError, LookupError):
    """Task id does not exist in the task store."""

    def __init__(self, task_id):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class MalformedRecipient(TaskCycleError, ValueError):
    """Recipient identifier is not a positive integer."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Malformed recipient id: {value!r}")


class StoreError(TaskCycleError):
    """A store collaborator failed."""


class StoreReadFailure(StoreError):
    """Reading from a store failed."""


class StoreWriteFailure(StoreError):
    """Writing to a store failed."""


class DuplicateNotification(StoreWriteFailure):
    """An unread notification with the same dedup key already exists."""


class DuplicateSuccessor(StoreWriteFailure):
    """A successor for this predecessor (or this occurrence number) already exists."""
