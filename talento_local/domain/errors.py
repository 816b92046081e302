class MarketplaceError(Exception):
    """Base exception for marketplace errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class ValidationError(MarketplaceError):
    status_code = 400

class NotFoundError(MarketplaceError):
    status_code = 404

class JobNotFoundError(NotFoundError):
    def __init__(self, job_id):
        super().__init__(f"Job {job_id} not found")

class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id):
        super().__init__(f"Application {application_id} not found")

class AuthorizationError(MarketplaceError):
    status_code = 403

class InvalidTransitionError(MarketplaceError):
    status_code = 400

    def __init__(self, current_status, target_status, reason: str | None = None):
        message = f"Cannot transition job from {current_status} to {target_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current_status = current_status
        self.target_status = target_status

class ConflictError(MarketplaceError):
    status_code = 409

class DuplicateApplicationError(ConflictError):
    def __init__(self, job_id, worker_id):
        super().__init__(f"Worker {worker_id} has already applied to job {job_id}")
