import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import configure_logging, get_settings
from .errors import FieldError, LedgerError, ValidationError
from .routers import auth, chart_of_accounts, journal_entries, ledger, reports

logger = logging.getLogger(__name__)

LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}


def error_path(loc) -> str:
    """Render a pydantic error location as ``lines[2].debit``."""
    path = ""
    for index, part in enumerate(loc):
        if index == 0 and part in LOCATION_ROOTS:
            continue
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "body"


configure_logging()
settings = get_settings()

app = FastAPI(title="ERP Ledger API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError(
        "Request validation failed.",
        [FieldError(error_path(item.get("loc", ())), item.get("msg", "invalid value")) for item in exc.errors()],
    )
    logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, error.kind, error)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


app.include_router(auth.router)
app.include_router(chart_of_accounts.router)
app.include_router(journal_entries.router)
app.include_router(ledger.router)
app.include_router(reports.router)


@app.get("/")
def root():
    return {"status": "ok"}
