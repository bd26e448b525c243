from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(status_code: int, data: Any = None, message: str = "Success") -> JSONResponse:
    """Success envelope shared by every endpoint: {status, data, message, success}."""
    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_code,
            "data": jsonable_encoder(data, by_alias=True),
            "message": message,
            "success": status_code < 400,
        },
    )
