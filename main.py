from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from examhub.core.config import settings
from examhub.core.exceptions import ExamError
from examhub.core.logging import configure_logging
from examhub.endpoints import exam_session, attempt
from examhub.middleware.exceptions import (
    exam_error_handler,
    global_exception_handler,
    storage_exception_handler,
    validation_exception_handler,
)
from examhub.middleware.logging import RequestLoggingMiddleware
from examhub.core.scheduler import start_scheduler, stop_scheduler

configure_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ExamError, exam_error_handler)
app.add_exception_handler(SQLAlchemyError, storage_exception_handler)

app.include_router(exam_session.router, prefix="/sessions", tags=["Exam Sessions"])
app.include_router(attempt.router, prefix="/sessions", tags=["Attempts"])

@app.on_event("startup")
async def startup_event():
    start_scheduler()

@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
