"""FastAPI integration for OneHitter."""

from onehitter.integrations.fastapi.router import create_otp_router

__all__ = ["create_otp_router"]
