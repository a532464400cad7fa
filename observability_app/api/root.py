from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from observability_app.services import synthetic

router = APIRouter(tags=["synthetic"])


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    """Instant 200; the baseline every other route is compared against."""
    return synthetic.root()
