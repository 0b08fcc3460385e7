import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from starlette.requests import Request
from starlette.responses import JSONResponse

from .errors import TranslationError

logger = logging.getLogger(__name__)

DEFAULT_TRANSLATE_URL = "https://translate.googleapis.com/translate_a/single"


class Translator:
    def __init__(self, url: str = DEFAULT_TRANSLATE_URL,
                 client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._client = client

    @asynccontextmanager
    async def _http(self):
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def translate(self, text: str, target_lang: str) -> str:
        params = {"client": "gtx", "sl": "auto", "tl": target_lang, "dt": "t", "q": text}
        async with self._http() as client:
            try:
                response = await client.get(self.url, params=params)
            except httpx.HTTPError as e:
                raise TranslationError(f"Translation API unreachable: {e}") from e
        if response.is_error:
            raise TranslationError(f"Translation API failed: {response.status_code}")

        # body looks like [[["translated", "source", ...], ...], ...]
        try:
            sentences = response.json()[0]
            return "".join(s[0] for s in sentences if s and s[0])
        except (ValueError, TypeError, IndexError, KeyError) as e:
            raise TranslationError("Translation API returned an unexpected body") from e


def make_translate_endpoint(translator: Translator):
    async def translate_endpoint(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = None
        text = body.get("text") if isinstance(body, dict) else None
        target_lang = body.get("targetLang") if isinstance(body, dict) else None
        if not text or not target_lang:
            return JSONResponse({"error": "Missing text or targetLang"}, status_code=400)

        try:
            translated = await translator.translate(text, target_lang)
        except TranslationError:
            logger.exception("Translation error target_lang=%s", target_lang)
            return JSONResponse({"error": "Internal Server Error"}, status_code=500)
        return JSONResponse({"translatedText": translated})

    return translate_endpoint
