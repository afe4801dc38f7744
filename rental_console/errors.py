class RentalConsoleError(Exception):
    """Base class for every error raised by the console."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreError(RentalConsoleError):
    """Transport, permission or driver failure reported by the record store."""

    def __init__(self, message: str, collection: str = None, record_id: str = None,
                 action: str = None):
        super().__init__(message)
        self.collection = collection
        self.record_id = record_id
        self.action = action

    def user_message(self) -> str:
        verb = self.action or "access"
        target = self.collection or "record"
        if self.record_id:
            return f"Could not {verb} {target} {self.record_id}: {self.message}"
        return f"Could not {verb} {target}: {self.message}"


class NotFoundError(RentalConsoleError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} {record_id} not found")
        self.collection = collection
        self.record_id = record_id


class ValidationError(RentalConsoleError):
    pass


class DeleteFailed(RentalConsoleError):
    """A cascading delete stopped part way.

    ``deleted`` lists the ``(collection, id)`` pairs removed before the
    failure; running the delete again resumes from where it stopped.
    """

    def __init__(self, collection: str, record_id: str, cause: Exception, deleted=None):
        super().__init__(f"Could not delete {collection} {record_id}: {cause}")
        self.collection = collection
        self.record_id = record_id
        self.cause = cause
        self.deleted = list(deleted or [])


class WorkflowStepFailed(RentalConsoleError):
    def __init__(self, workflow: str, step: int, step_name: str, cause: Exception,
                 completed=None, compensated=None, compensation_errors=None):
        super().__init__(f"{workflow} failed at step {step} ({step_name}): {cause}")
        self.workflow = workflow
        self.step = step
        self.step_name = step_name
        self.cause = cause
        self.completed = list(completed or [])
        self.compensated = list(compensated or [])
        self.compensation_errors = list(compensation_errors or [])
