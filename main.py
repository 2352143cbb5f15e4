from fastapi import FastAPI, HTTPException

from api.app import create_app

try:
    app = create_app()
except (RuntimeError, ValueError) as exc:
    startup_error = str(exc)
    app = FastAPI(title="HTML to Bee Converter", version="0.1.0")

    @app.get("/")
    async def api_disabled() -> dict[str, str]:
        raise HTTPException(status_code=503, detail=startup_error)
