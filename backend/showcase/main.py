from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .routes_admin import router as admin_router
from .routes_auth import router as auth_router
from .routes_comments import router as comments_router
from .routes_notifications import router as notifications_router
from .routes_profiles import profile_router
from .routes_profiles import router as profiles_router
from .routes_projects import router as projects_router
from .routes_tags import router as tags_router
from .routes_ws import router as ws_router
from .services.notify import NotificationBus
from .settings import get_settings

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("showcase")

app = FastAPI(title=settings.app_name)
app.state.notification_bus = NotificationBus()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": jsonable_encoder(errors)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url)
    return PlainTextResponse("Internal Server Error", status_code=500)


@app.get("/ping")
async def ping():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(projects_router)
app.include_router(comments_router)
app.include_router(tags_router)
app.include_router(profiles_router)
app.include_router(profile_router)
app.include_router(admin_router)
app.include_router(notifications_router)
app.include_router(ws_router)


@app.on_event("shutdown")
async def shutdown_event():
    app.state.notification_bus.close()
    logger.info("Notification bus closed on app shutdown")
