from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cashbook.common.exceptions import CashbookError, UnknownCollectionError
from cashbook.logger_config import logger


def register_error_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, e: StarletteHTTPException):
        return JSONResponse(
            status_code=e.status_code,
            content={
                "success": False,
                "message": e.detail,
                "status_code": e.status_code,
            },
            headers=getattr(e, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, e: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Validation error",
                "status_code": 422,
                "errors": jsonable_errors(e),
            },
        )

    @app.exception_handler(UnknownCollectionError)
    async def handle_unknown_collection(request: Request, e: UnknownCollectionError):
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": str(e), "status_code": 404},
        )

    @app.exception_handler(CashbookError)
    async def handle_cashbook_error(request: Request, e: CashbookError):
        logger.warning(f"{type(e).__name__} on {request.url.path}: {e}")
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": str(e), "status_code": 400},
        )

    @app.exception_handler(Exception)
    async def handle_exception(request: Request, e: Exception):
        # Log the exception with traceback
        logger.exception("Unhandled exception occurred")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Internal Server Error",
                "details": str(e),
                "status_code": 500,
            },
        )


def jsonable_errors(e: RequestValidationError):
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in e.errors()
    ]
