# paytrack/main.py
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from . import config
from .db import SessionLocal, dispose_db, init_db
from .deps import credentials, get_service, tokens, unwrap
from .errors import ErrorKind, Failure
from .logging_config import get_logger, setup_logging
from .schemas import LoginIn, LoginOut, PublicProfile, RegisterIn, UserOut
from .service import AccountService
from .users import router as users_router

setup_logging(config.LOG_LEVEL, config.LOG_JSON)
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def bootstrap_admin() -> None:
    """Create the env-configured admin account if it does not exist yet."""
    if not config.ADMIN_EMAIL:
        return
    db = SessionLocal()
    try:
        result = AccountService(db, credentials, tokens).ensure_admin(
            config.ADMIN_EMAIL,
            password=config.ADMIN_PASSWORD or None,
            password_hash=config.ADMIN_PASSWORD_HASH or None,
        )
    finally:
        db.close()
    if isinstance(result, Failure):
        logger.error("admin bootstrap skipped: %s", result.message)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    bootstrap_admin()
    logger.info("paytrack started")
    yield
    dispose_db()
    logger.info("paytrack stopped")


app = FastAPI(
    title="Paytrack API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url=None,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

origins = {"http://localhost:5173", "http://localhost:3000"}
if config.FRONTEND_ORIGIN and config.FRONTEND_ORIGIN != "*":
    origins.add(config.FRONTEND_ORIGIN)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

@app.exception_handler(RequestValidationError)
async def validation_error(_request: Request, exc: RequestValidationError):
    problems = [
        {"field": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    message = "; ".join(f"{p['field']}: {p['message']}" for p in problems) or "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {
            "error": ErrorKind.VALIDATION_FAILURE.value, "message": message, "fields": problems,
        }},
    )


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"error": "INTERNAL_ERROR", "message": "Internal server error"}},
    )

# ---------------------------------------------------------------------------
# Root, health
# ---------------------------------------------------------------------------

@app.get("/", include_in_schema=False)
def index():
    return RedirectResponse(url="/docs")


@app.get("/healthz", include_in_schema=False)
def healthz():
    return {"ok": True}

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@app.post("/auth/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, svc: AccountService = Depends(get_service)):
    return unwrap(svc.register(payload))


@app.post("/auth/login", response_model=LoginOut)
def login(payload: LoginIn, svc: AccountService = Depends(get_service)):
    res = unwrap(svc.login(payload.email, payload.password))
    return LoginOut(token=res.token, user=PublicProfile.model_validate(res.user))

# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

app.include_router(users_router)


def run() -> None:
    import uvicorn

    uvicorn.run("paytrack.main:app", host=config.HOST, port=config.PORT)
