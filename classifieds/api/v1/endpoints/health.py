from fastapi import APIRouter, Depends

from classifieds.adapters.registry import Backends
from classifieds.api.v1.deps import get_backends

router = APIRouter()


@router.get("/health")
async def health(backends: Backends = Depends(get_backends)) -> dict:
    return {"status": "ok", "backends": backends.configured()}
