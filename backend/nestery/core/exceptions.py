"""
Domain errors raised by the service layer.

Each error is an HTTPException carrying its status code, so services can
raise them and let them propagate untouched to the HTTP boundary, where
FastAPI renders {"detail": message}.
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """A user, property or booking does not exist."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """Business-rule rejection: bad dates, no availability, not enough points."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ForbiddenError(HTTPException):
    """The caller may not act on a booking it does not own."""

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
