import base64
import binascii
import httpx
import json
import logging
import os
from typing import List, Dict, Any, Optional

from pydantic import ValidationError

from brandforge.errors import ErrorKind, GenerationError, from_http_error
from brandforge.feasibility import correct_feasibility
from brandforge.prompts import (
    BRAND_IDENTITY_SCHEMA,
    LOCATION_SCHEMA,
    brand_identity_prompt,
    location_prompt,
    with_reference,
)
from brandforge.quota import QuotaGuard
from brandforge.retry import with_retry
from brandforge.schemas import (
    BrandIdentity,
    BusinessRequest,
    GeneratedImage,
    LocationValidation,
)

logger = logging.getLogger(__name__)


class GeminiClient:

    _base_url = "https://generativelanguage.googleapis.com/v1beta/models"
    _text_model = os.getenv("BRANDFORGE_TEXT_MODEL", "gemini-2.5-flash")
    _image_model = os.getenv("BRANDFORGE_IMAGE_MODEL", "gemini-2.5-flash-image")
    _api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
    _timeout = 120.0

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def set_config(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        text_model: Optional[str] = None,
        image_model: Optional[str] = None,
    ):
        if api_key:
            self._api_key = api_key
        if base_url:
            self._base_url = base_url.rstrip("/")
        if text_model:
            self._text_model = text_model
        if image_model:
            self._image_model = image_model

    # ------------------------------------------------------------------
    # 🔹 LOW LEVEL GENERATION
    # ------------------------------------------------------------------
    async def _generate(
        self,
        model: str,
        parts: List[Dict[str, Any]],
        generation_config: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        One generateContent round trip. Failures come back as GenerationError.
        """

        if not self._api_key:
            raise GenerationError(
                "GEMINI_API_KEY environment variable is not set.",
                kind=ErrorKind.FATAL,
            )

        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self._base_url}/{model}:generateContent",
                    headers=headers,
                    json=payload,
                )
                response.raise_for_status()
                return response.json()

        except httpx.HTTPError as e:
            error = from_http_error(e)
            logger.error(f"Gemini call to {model} failed ({error.kind.value}): {error.message}")
            raise error from e

        except ValueError as e:
            raise GenerationError(
                f"Gemini returned a non-JSON body: {e}",
                kind=ErrorKind.MALFORMED,
            ) from e

    async def _generate_json(
        self,
        prompt: str,
        schema: Dict[str, Any],
    ) -> Optional[str]:
        data = await with_retry(
            lambda: self._generate(
                self._text_model,
                [{"text": prompt}],
                {
                    "responseMimeType": "application/json",
                    "responseSchema": schema,
                },
            )
        )
        return self._response_text(data)

    # ------------------------------------------------------------------
    # 🔹 UTIL: RESPONSE EXTRACTION
    # ------------------------------------------------------------------
    @staticmethod
    def _first_parts(data: Dict[str, Any]) -> List[Dict[str, Any]]:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        content = candidates[0].get("content") or {}
        return content.get("parts") or []

    def _response_text(self, data: Dict[str, Any]) -> Optional[str]:
        texts = [p["text"] for p in self._first_parts(data) if p.get("text")]
        text = "".join(texts).strip()
        return text or None

    def _extract_json_object(self, text: str) -> Dict[str, Any]:
        start = text.find("{")
        if start == -1:
            raise ValueError("No JSON object found in response")

        depth = 0
        for i in range(start, len(text)):
            if text[i] == "{":
                depth += 1
            elif text[i] == "}":
                depth -= 1
                if depth == 0:
                    return json.loads(text[start : i + 1])

        raise ValueError("Unbalanced JSON braces")

    def _parse_json(self, text: str) -> Dict[str, Any]:
        try:
            data = json.loads(text)
        except ValueError:
            # fenced or chatty output
            data = self._extract_json_object(text)
        if not isinstance(data, dict):
            raise ValueError("Expected a JSON object")
        return data

    # ------------------------------------------------------------------
    # 🔹 LOCATION CHECK
    # ------------------------------------------------------------------
    async def validate_location(
        self,
        location: str,
    ) -> LocationValidation:

        text = await self._generate_json(location_prompt(location), LOCATION_SCHEMA)

        if not text:
            return LocationValidation(is_valid=False, normalized_name=location)

        try:
            return LocationValidation(**self._parse_json(text))
        except (ValueError, ValidationError) as e:
            logger.error(f"Location parse failed: {e} | {text}")
            return LocationValidation(is_valid=False, normalized_name=location)

    # ------------------------------------------------------------------
    # 🔹 BRAND IDENTITY
    # ------------------------------------------------------------------
    async def generate_brand_identity(
        self,
        request: BusinessRequest,
    ) -> BrandIdentity:

        text = await self._generate_json(brand_identity_prompt(request), BRAND_IDENTITY_SCHEMA)

        if not text:
            raise GenerationError("No text returned from Gemini", kind=ErrorKind.MALFORMED)

        try:
            identity = BrandIdentity(**self._parse_json(text))
        except (ValueError, ValidationError) as e:
            logger.error(f"Brand identity parsing failed: {e}\n{text}")
            raise GenerationError(
                f"Malformed brand identity response: {e}",
                kind=ErrorKind.MALFORMED,
            ) from e

        plan = correct_feasibility(identity.budget_plan, request.budget)
        logger.info(
            f"Generated brand '{identity.company_name}' ({identity.business_type}, "
            f"{len(identity.products)} offerings, feasible={plan.is_feasible})"
        )
        return identity.model_copy(update={"budget_plan": plan})

    # ------------------------------------------------------------------
    # 🔹 IMAGES
    # ------------------------------------------------------------------
    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        reference_image: Optional[GeneratedImage] = None,
        *,
        quota: QuotaGuard,
    ) -> GeneratedImage:

        quota.check()

        parts: List[Dict[str, Any]] = []
        if reference_image is not None:
            parts.append(
                {
                    "inlineData": {
                        "mimeType": reference_image.mime_type,
                        "data": reference_image.encoded,
                    }
                }
            )
            parts.append({"text": with_reference(prompt)})
        else:
            parts.append({"text": prompt})

        config = {
            "responseModalities": ["IMAGE"],
            "imageConfig": {"aspectRatio": aspect_ratio},
        }

        try:
            data = await with_retry(
                lambda: self._generate(self._image_model, parts, config),
                allow_resource_exhausted=False,
            )
        except GenerationError as e:
            # latch before the error reaches the caller
            quota.record(e)
            raise

        for part in self._first_parts(data):
            inline = part.get("inlineData")
            if not inline or not inline.get("data"):
                continue
            try:
                payload = base64.b64decode(inline["data"])
            except (binascii.Error, ValueError) as e:
                raise GenerationError(
                    f"Image payload is not valid base64: {e}",
                    kind=ErrorKind.MALFORMED,
                ) from e
            return GeneratedImage(
                data=payload,
                mime_type=inline.get("mimeType") or "image/png",
            )

        raise GenerationError("No image generated.", kind=ErrorKind.MALFORMED)


llm_client = GeminiClient()
