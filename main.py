import sys
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from examdesk.infrastructure.config import settings
from examdesk.infrastructure.db.session import Base, engine
from examdesk.infrastructure.db import models  # noqa: F401
from examdesk.infrastructure.attempt_system.errors import AttemptError, ValidationFailedError
from examdesk.presentation.api.routers.attempt_router import router as attempt_router
from examdesk.presentation.api.routers.results_router import router as results_router

# Create tables
Base.metadata.create_all(bind=engine)

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(title=settings.APP_NAME)


@app.exception_handler(AttemptError)
async def attempt_error_handler(request: Request, exc: AttemptError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    logger.warning(f"Validation failed on {request.method} {request.url.path}: {errors}")
    error = ValidationFailedError(errors=errors)
    return JSONResponse(status_code=error.status_code, content=error.to_response())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "An internal server error occurred."}
    )


# Include routers; results first so its literal paths are matched before /{attempt_id}
app.include_router(results_router)
app.include_router(attempt_router)


@app.get("/")
def root():
    return {"message": "Welcome to ExamDesk API"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
