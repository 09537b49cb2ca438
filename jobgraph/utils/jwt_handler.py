# jwt_handler.py
from fastapi import HTTPException, status
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from jobgraph.config import settings


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_user_id(token: str) -> int:
    """Verify a bearer token minted by the auth service and return its user id.

    The ``sub`` claim must hold an integer user id in string form.
    Every failure is a 401.
    """

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise _unauthorized("Token expired") from exc
    except JWTError as exc:
        raise _unauthorized("Invalid token") from exc

    subject = payload.get("sub")
    if subject is None:
        raise _unauthorized("Invalid token payload")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise _unauthorized("Invalid token subject") from exc
