"""
FastAPI Production Application

Main entry point for the Gold Analytics Reporting API.
"""

from gold_analytics.config import get_settings
from gold_analytics.config.logging import configure_logging
from gold_analytics.serving.api import create_api_app

settings = get_settings()

configure_logging()

app = create_api_app()


@app.get("/api/v1/info")
def api_info():
    """API information endpoint."""
    return {
        "name": "Gold Analytics Reporting API",
        "version": settings.version,
        "environment": settings.app_env,
        "documentation": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
