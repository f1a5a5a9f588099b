from fastapi import APIRouter, Request
from sqlalchemy import text

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict:  # type: ignore[type-arg]
    """Liveness + database health check."""
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        return {"status": "healthy", "database": "memory"}

    db_status = "connected"
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        db_status = f"error: {exc}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
    }
