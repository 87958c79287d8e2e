"""
Main FastAPI application entry point.
"""
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quizdrill.api.progress import router as progress_router
from quizdrill.api.questions import router as questions_router
from quizdrill.api.responses import router as responses_router
from quizdrill.core.config import Settings, get_settings
from quizdrill.core.errors import QuizDrillError
from quizdrill.services.sheets import RESPONSES_HEADER, SheetStore, get_store

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)
app.add_middleware(CORSMiddleware, allow_origins=settings.CORS_ORIGINS, allow_credentials=True,
                   allow_methods=["*"], allow_headers=["*"])
app.include_router(questions_router, prefix="/v1", tags=["questions"])
app.include_router(responses_router, prefix="/v1", tags=["responses"])
app.include_router(progress_router, prefix="/v1/progress", tags=["progress"])


def _error(status_code: int, message, error_type: str, **extra) -> JSONResponse:
    body = {"message": message, "type": error_type, "status_code": status_code}
    body.update(extra)
    return JSONResponse(status_code=status_code, content={"error": body})


@app.exception_handler(QuizDrillError)
async def quizdrill_exception_handler(request: Request, exc: QuizDrillError):
    """Handle the service error taxonomy."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type}: {exc.message}")
    return _error(exc.status_code, exc.message, exc.error_type)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return _error(exc.status_code, exc.detail, "http_error")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors."""
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error", "validation_error",
                  details=jsonable_errors(exc))


def jsonable_errors(exc: RequestValidationError):
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")} for e in exc.errors()]


@app.get("/health", tags=["health"])
def health_check(store: SheetStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    """Liveness and sheet presence; repairs the Responses header on the way."""
    store.ensure_header(settings.RESPONSES_SHEET, RESPONSES_HEADER)
    return {
        "ok": True,
        "hasQuestions": store.has_sheet(settings.QUESTIONS_SHEET),
        "hasResponses": store.has_sheet(settings.RESPONSES_SHEET),
        "timeZone": settings.TIME_ZONE,
        "version": settings.APP_VERSION,
        "serverNow": datetime.now(ZoneInfo(settings.TIME_ZONE)).isoformat(),
    }
