"""
Entry point for the spacing service.

Run with:
    uvicorn spacing.api.main:create_app --factory --reload --port 8100
    python main.py
"""
import uvicorn

from config import get_settings

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "spacing.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
