from typing import Any

from fastapi import HTTPException


def api_error(status_code: int, error: str, **extra: Any) -> HTTPException:
    """HTTPException whose detail is {"error": ..., **extra}; extra keys are sent as given."""
    return HTTPException(status_code=status_code, detail={"error": error, **extra})
