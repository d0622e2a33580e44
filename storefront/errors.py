# storefront/errors.py
from fastapi import HTTPException

# Request failures raised from the endpoint logic. The app renders every
# HTTPException as a {"success": false, "message": ...} envelope.


class AuthenticationRequired(HTTPException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(status_code=401, detail=message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationDenied(HTTPException):
    def __init__(self, message: str = "You are not authorized to perform this action"):
        super().__init__(status_code=403, detail=message)


class ValidationFailed(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=400, detail=message)


class NotFound(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=404, detail=message)


class UpstreamFailure(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=500, detail=message)


def reason(exc: BaseException) -> str:
    """Human readable cause of an exception, without the status prefix."""
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    return str(exc) or exc.__class__.__name__
