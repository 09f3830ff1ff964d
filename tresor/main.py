from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from tresor.api.v1.api import api_router
from tresor.core.config import settings
from tresor.core.logging_config import get_logger, setup_logging
from tresor.db.mongo import connect_to_mongo, disconnect_from_mongo
from tresor.utils.errors import InsufficientBalanceError, LedgerValidationError, NotFoundError, PolicyError

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting {settings.PROJECT_NAME} with {settings.STORE_BACKEND} store")
    use_mongo = settings.STORE_BACKEND != "memory"
    try:
        if use_mongo:
            await connect_to_mongo()
        yield
    finally:
        logger.info("Shutting down...")
        if use_mongo:
            await disconnect_from_mongo()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.DESCRIPTION,
    version=settings.PROJECT_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerValidationError)
async def validation_error_handler(request: Request, exc: LedgerValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})


@app.exception_handler(PolicyError)
async def policy_error_handler(request: Request, exc: PolicyError):
    content = {"detail": exc.message}
    if isinstance(exc, InsufficientBalanceError) and exc.check is not None:
        content["current_balance"] = exc.check.current_balance
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=content)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": "Storage unavailable"})


@app.get("/")
async def root():
    return {"message": "Welcome to Tresor API"}


app.include_router(api_router, prefix=settings.API_V1_STR)
