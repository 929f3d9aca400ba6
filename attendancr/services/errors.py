# --- Service layer exception classes ---

class ServiceError(Exception):
    """General exception class for the service layer."""
    pass


class NotFoundError(ServiceError):
    """The referenced record does not exist."""
    pass


class AuthenticationError(ServiceError):
    """Credentials (PIN, password or token) were rejected."""
    pass
