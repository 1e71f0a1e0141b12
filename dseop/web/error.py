class NotFoundError(Exception):
    """Resource not found"""
    pass


class AuthenticationError(Exception):
    """Node management API refused the request."""
    pass
