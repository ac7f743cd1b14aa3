from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException

from workdigest.errors import GenerationFailedError, NoRawInputError, NotFoundError, WorkdigestError

STATUS_CODES: dict[type[WorkdigestError], int] = {
    NotFoundError: 404,
    NoRawInputError: 409,
    GenerationFailedError: 502,
}


@contextmanager
def http_errors() -> Iterator[None]:
    """Re-raise engine errors as `HTTPException`s with a matching status"""
    try:
        yield
    except WorkdigestError as e:
        status_code = next((code for cls, code in STATUS_CODES.items() if isinstance(e, cls)), 500)
        raise HTTPException(status_code=status_code, detail=str(e)) from e


def forbidden(requester: str, what: str) -> HTTPException:
    return HTTPException(status_code=403, detail=f'{requester} may not access {what}')
