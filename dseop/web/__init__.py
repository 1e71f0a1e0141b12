from .client import NodeMgmtClient
from .error import AuthenticationError, NotFoundError

__all__ = ["NodeMgmtClient", "AuthenticationError", "NotFoundError"]
