"""
Main FastAPI application
"""
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select

from oneonone.config import get_settings
from oneonone.database import engine, Base, AsyncSessionLocal
from oneonone.models import User, UserRole
from oneonone.api.auth import get_password_hash
from oneonone.api import auth, users, meetings, recordings, recurring_schedules, todos, notifications, cron
from oneonone.services.scheduler import start_meeting_scheduler
from oneonone.utils.logger import get_logger

settings = get_settings()
logger = get_logger("oneonone")


async def seed_admin():
    """Create the first administrator from ADMIN_EMAIL / ADMIN_PASSWORD if missing"""
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == settings.ADMIN_EMAIL))
        if result.scalar_one_or_none():
            return
        session.add(User(
            email=settings.ADMIN_EMAIL,
            name=settings.ADMIN_NAME,
            hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
            role=UserRole.SUPER_ADMIN,
            is_active=True,
        ))
        await session.commit()
        logger.info(f"Created default admin user {settings.ADMIN_EMAIL}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")

    await seed_admin()

    scheduler_task = asyncio.create_task(start_meeting_scheduler())

    yield

    scheduler_task.cancel()
    await engine.dispose()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing fields are reported as 400, naming the first offending field"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    logger.warning(f"Validation error for {request.url.path}: {field}: {message}")
    return JSONResponse(
        status_code=400,
        content={"detail": f"{field}: {message}", "errors": jsonable_encoder(errors)},
    )


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.APP_BASE_URL, "http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(meetings.router, prefix="/api/meetings", tags=["Meetings"])
app.include_router(recordings.router, prefix="/api/meetings", tags=["Recordings"])
app.include_router(recurring_schedules.router, prefix="/api/recurring-schedules", tags=["Recurring Schedules"])
app.include_router(todos.router, prefix="/api/todos", tags=["Todos"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(cron.router, prefix="/api/cron", tags=["Cron"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "oneonone.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
