from uuid import uuid4

from fastapi import HTTPException

from utils.state import State


def internal_error(action: str, e: Exception) -> HTTPException:
    """Log an unexpected failure and build the 500 returned to the caller.

    The caller only sees the action and a short reference; the exception text
    stays in the logs under the same reference.
    """
    reference = uuid4().hex[:12]
    State.logger.opt(exception=e).error(
        f"An error occured while {action} [ref={reference}]: {str(e)}"
    )
    return HTTPException(
        status_code=500,
        detail=f"An error occured while {action}. Reference: {reference}",
    )
