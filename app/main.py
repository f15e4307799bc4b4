import logging

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.config import settings
from app.database import Base, engine
from app.models import otp_verification, user, user_session  # noqa: F401  (register tables)
from app.routers import auth, oauth, profile
from app.utils.response import create_response, handle_exception, http_exception_handler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.PROJECT_NAME)
# OAuth state lives in the signed session cookie
app.add_middleware(SessionMiddleware, secret_key=settings.JWT_SECRET)
app.add_exception_handler(HTTPException, http_exception_handler)

# Auto create tables
Base.metadata.create_all(bind=engine)

# CORS for SPA / mobile access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add routes
app.include_router(auth.router)
app.include_router(oauth.router)
app.include_router(profile.router)


@app.get("/")
def home():
    try:
        return create_response(
            message="Navodaya Connect API running",
            data={"service": "navodaya-connect", "environment": settings.ENVIRONMENT},
            status_code=status.HTTP_200_OK
        )
    except Exception as exc:
        return handle_exception(exc)
