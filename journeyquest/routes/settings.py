"""Health check, settings, and reward ledger connection check endpoints."""

from fastapi import APIRouter

from journeyquest import storage

from .models import CheckLedgerBody

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.post("/check-ledger")
async def check_ledger(body: CheckLedgerBody):
    """Quick health check against a reward ledger URL."""
    import httpx

    url = f"{body.url.rstrip('/')}/api/health"
    headers: dict[str, str] = {}
    if body.api_key:
        headers["Authorization"] = f"Bearer {body.api_key}"
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            resp = await client.get(url, headers=headers)
            resp.raise_for_status()
        return {"ok": True}
    except httpx.HTTPError:
        return {"ok": False}


@router.get("/settings")
async def get_settings():
    """Get global app settings (scoring constants, reward ledger connection)."""
    return storage.get_config()


@router.patch("/settings")
async def update_settings(body: dict):
    """Update global app settings (partial merge)."""
    return storage.update_config(body)
