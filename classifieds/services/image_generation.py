from __future__ import annotations

import logging

from classifieds.core.errors import ImageGenerationError
from classifieds.services.http_client import GenerativeApiClient

log = logging.getLogger(__name__)

GENERATE_IMAGE_PROMPT = (
    "Generate a realistic, high-quality, professional photograph of the following item or concept "
    "for a local classifieds website: {title}. The image should be well-lit, in focus, and look appealing "
    "to potential buyers. Do not include any text or logos in the image."
)


class GeminiImageGenerator:
    """
    Placeholder image generation for listings created without photos.
    Returns a data:<mime>;base64,... URI, or the placeholder URL when the model
    answers without an image part.
    """

    def __init__(self, *, client: GenerativeApiClient, model: str, placeholder_url: str):
        self._client = client
        self._model = model
        self._placeholder_url = placeholder_url

    async def generate(self, title: str) -> str:
        body = {
            "contents": [{"role": "user", "parts": [{"text": GENERATE_IMAGE_PROMPT.format(title=title)}]}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        res = await self._client.generate_content(model=self._model, body=body)
        if not res.ok:
            raise ImageGenerationError(f"image generation failed: {res.error_code} {res.error_message}")

        for candidate in res.detail.get("candidates") or []:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData") or part.get("inline_data")
                if inline and inline.get("data"):
                    mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                    return f"data:{mime};base64,{inline['data']}"

        log.warning("image generation returned no image for %r, using placeholder", title)
        return self._placeholder_url
