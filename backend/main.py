# backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import init_db
from utils.errors import AppError

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Router imports
from routes.auth import router as auth_router  # noqa: E402
from routes.appointments import router as appointments_router  # noqa: E402
from routes.patients import router as patients_router  # noqa: E402
from routes.dentists import router as dentists_router  # noqa: E402
from routes.dashboard import router as dashboard_router  # noqa: E402
from routes.logs import router as logs_router  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create missing tables (migrations own the schema in production)
    init_db()
    yield


app = FastAPI(title="Dental Clinic API", version="1.0.0", lifespan=lifespan)

# CORS Configuration
# Cookies are sent cross-origin, so origins must be listed explicitly
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Error rendering: every failure leaves as {"error": "..."} ===

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid input data", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "An unexpected error occurred"},
    )


# Router registration
app.include_router(auth_router)
app.include_router(appointments_router)
app.include_router(patients_router)
app.include_router(dentists_router)
app.include_router(dashboard_router)
app.include_router(logs_router)


@app.get("/")
def read_root():
    return {"message": "Dental Clinic API is running"}
