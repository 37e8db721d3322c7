from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_pagination import add_pagination
from loguru import logger

# --- ADMIN ROUTES ---
from nodo360.api.v1.admin import announcements as admin_announcements
from nodo360.api.v1.admin import course_review as admin_course_review
from nodo360.api.v1.admin import entitlements as admin_entitlements
from nodo360.api.v1.admin import reorder as admin_reorder
from nodo360.api.v1.admin import system_settings as admin_system_settings
from nodo360.api.v1.admin import user as admin_user

# --- SHARED ROUTES ---
from nodo360.api.v1.shares import (
    certificates,
    gamification,
    governance,
    mentor,
    notification,
    referral,
)

# --- USER ROUTES ---
from nodo360.api.v1.user import bookmarks, enroll, feedback, learning, messages, progress, quiz
from nodo360.core.exceptions import register_exception_handlers
from nodo360.core.logging import configure_logging
from nodo360.core.ratelimit import close_rate_limiter
from nodo360.core.settings import settings

# --- MIDDLEWARE ---
from nodo360.middleware.request_context import RequestContextMiddleware

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):

    # ================================
    # 1) GLOBAL HTTP CLIENT
    # ================================
    app.state.http = httpx.AsyncClient(timeout=30)
    logger.info("🌐 HTTP client started ({})", settings.ENVIRONMENT)

    try:
        yield
    finally:
        # ================================
        # 2) CLOSE HTTP CLIENT
        # ================================
        await app.state.http.aclose()
        await close_rate_limiter()
        logger.info("🌐 HTTP clients closed")


# ===== APP CONFIG =====
app = FastAPI(
    title="Nodo360 API",
    description="Backend de la plataforma educativa Nodo360",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)
add_pagination(app)
prefix = "/api/v1"

# ===== REGISTER ROUTERS =====

# --- Share ---
app.include_router(notification.router, prefix=prefix)
app.include_router(gamification.router, prefix=prefix)
app.include_router(governance.router, prefix=prefix)
app.include_router(mentor.router, prefix=prefix)
app.include_router(referral.router, prefix=prefix)
app.include_router(certificates.router, prefix=prefix)

# --- USER ROUTES ---
app.include_router(bookmarks.router, prefix=prefix)
app.include_router(enroll.router, prefix=prefix)
app.include_router(progress.router, prefix=prefix)
app.include_router(learning.router, prefix=prefix)
app.include_router(quiz.router, prefix=prefix)
app.include_router(messages.router, prefix=prefix)
app.include_router(feedback.router, prefix=prefix)

# --- ADMIN ROUTES ---
app.include_router(admin_user.router, prefix=prefix)
app.include_router(admin_reorder.router, prefix=prefix)
app.include_router(admin_entitlements.router, prefix=prefix)
app.include_router(admin_system_settings.router, prefix=prefix)
app.include_router(admin_course_review.router, prefix=prefix)
app.include_router(admin_announcements.router, prefix=prefix)

# --- Enlaces de referido (/r/{code}, fuera de /api) ---
app.include_router(referral.public_router)


# ===== ROOT =====
@app.get("/")
async def health():
    return {"status": "ok", "service": "nodo360"}


if __name__ == "__main__":
    uvicorn.run("nodo360.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
