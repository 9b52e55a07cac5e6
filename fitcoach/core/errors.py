"""
Error taxonomy shared by identity resolution, the tenant gateway and the routes.

Each error is an HTTPException so FastAPI renders it without extra handlers.
Data-level denials read the same as "does not exist".
"""

from fastapi import HTTPException, status
from typing import Optional


class Unauthenticated(HTTPException):
    """Missing, malformed, expired or otherwise invalid credential."""

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Unauthorized(HTTPException):
    """Authenticated, but the caller's role does not allow the operation."""

    def __init__(self, detail: str = "Forbidden for this role"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundOrDenied(HTTPException):
    def __init__(self, resource: str = "Record"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource} not found")


class WriteDenied(HTTPException):
    """The data store's access policy rejected a write."""

    def __init__(self, resource: str = "Record"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Write denied by access policy: {resource}",
        )


class ValidationFailed(HTTPException):
    def __init__(self, detail: str = "Invalid request data"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unavailable(HTTPException):
    """An upstream dependency (identity provider or data store) is unreachable."""

    def __init__(self, dependency: str, detail: Optional[str] = None):
        self.dependency = dependency
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail or f"{dependency} unavailable, try again later",
        )


class UserAlreadyExists(HTTPException):
    def __init__(self, email: str):
        self.email = email
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
