import logging

from fastapi import APIRouter, Depends

from classifieds.adapters.registry import Backends
from classifieds.api.v1.deps import get_backends
from classifieds.core.config import settings
from classifieds.schemas.ai import GenerateImageIn, GenerateImageOut, SuggestTagsIn, SuggestTagsOut
from classifieds.services.auth import get_credential

log = logging.getLogger(__name__)
router = APIRouter(prefix="/ai")


@router.post("/suggest-tags", response_model=SuggestTagsOut)
async def suggest_tags(
    payload: SuggestTagsIn,
    credential: str | None = Depends(get_credential),
    backends: Backends = Depends(get_backends),
) -> SuggestTagsOut:
    """Best effort: any tagger failure yields an empty list, never an error."""
    backends.require("identity", "tagger")
    await backends.identity.verify(credential)
    try:
        tags = await backends.tagger.suggest(payload.title, payload.description)
    except Exception:
        log.warning("tag suggestion failed", exc_info=True)
        tags = []
    return SuggestTagsOut(tags=tags)


@router.post("/generate-image", response_model=GenerateImageOut)
async def generate_image(
    payload: GenerateImageIn,
    credential: str | None = Depends(get_credential),
    backends: Backends = Depends(get_backends),
) -> GenerateImageOut:
    backends.require("identity", "images")
    await backends.identity.verify(credential)
    try:
        image_url = await backends.images.generate(payload.title)
    except Exception:
        log.warning("image generation failed, using placeholder", exc_info=True)
        image_url = settings.placeholder_image_url
    return GenerateImageOut(image_url=image_url)
