"""Gemini wrapper: sends a tree photo plus the analysis prompt, returns plain text."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from app.errors import AnalysisError
from app.schemas.tree import EncodedImage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

TREE_ANALYSIS_PROMPT = (
    "Analyze this tree image for educational purposes and provide the following information:\n"
    "1. Species identification (scientific name, common name, family, classification)\n"
    "2. Physical characteristics (size, leaf type, bark, distinctive features)\n"
    "3. Growth requirements (light, soil, moisture, temperature, growth rate)\n"
    "4. Ecological information (lifespan, wildlife value, native range, ecosystem benefits)\n"
    "5. Additional information (uses, disease resistance, cultural significance, interesting facts)\n"
    "\n"
    "IMPORTANT: This is for educational purposes only."
)

# Shown with the bundled default photo so the page has content before any API call.
DEFAULT_ANALYSIS = """\
1. Species Identification:
- Scientific name: Quercus rubra
- Common name: Northern Red Oak
- Family: Fagaceae
- Classification: Deciduous hardwood

2. Physical Characteristics:
- Size: Large (60-75 feet tall, 45-foot spread)
- Leaf Type: Alternate, simple, 7-9 lobed with bristle tips
- Bark: Dark gray-brown, developing distinctive ridges and furrows
- Distinctive Features: Acorns with shallow caps, red-brown fall foliage
- Growth Pattern: Pyramidal when young, rounded crown at maturity

3. Growth Requirements:
- Light Needs: Full sun to partial shade
- Soil Preference: Adaptable, prefers well-drained, slightly acidic soil
- Moisture: Moderate, drought-tolerant once established
- Temperature Hardiness: USDA zones 4-8
- Growth Rate: Moderate to fast (1-2 feet per year)

4. Ecological Information:
- Lifespan: 200-400 years
- Wildlife Value: Acorns provide food for wildlife, nesting habitat for birds
- Native Range: Eastern and Central North America
- Ecosystem Benefits: Carbon sequestration, erosion control, shade
- Seasonal Changes: Brilliant red fall color, winter dormancy

5. Additional Information:
- Uses: Shade tree, timber, wildlife habitat
- Disease Resistance: Moderate, susceptible to oak wilt
- Cultural Significance: Symbol of strength and endurance
- Interesting Facts: Can produce up to 1,000 acorns in a good year
- Conservation Status: Least concern, widespread"""

# Gemini rejects the non-standard alias some browsers send.
_MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}

UNREADABLE_MESSAGE = "The analysis service returned an unreadable response."


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _error_message(response: requests.Response) -> str:
    """Pull ``error.message`` out of a failed response; empty when there is none."""
    try:
        body = response.json()
    except ValueError:
        # proxy or gateway pages are not shown to the user
        return ""
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", "")).strip()
    return ""


def extract_text(body: Any) -> str:
    """Join the text parts of the first candidate. Raises AnalysisError if there are none."""
    if not isinstance(body, dict):
        raise AnalysisError(UNREADABLE_MESSAGE)
    candidates = body.get("candidates") or []
    if not isinstance(candidates, list):
        raise AnalysisError(UNREADABLE_MESSAGE)
    if not candidates:
        feedback = body.get("promptFeedback")
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if reason:
            raise AnalysisError(f"The analysis service blocked this request ({reason}).")
        raise AnalysisError("No analysis was returned for this image.")

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise AnalysisError(UNREADABLE_MESSAGE)
    content = candidate.get("content") or {}
    parts = (content.get("parts") or []) if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise AnalysisError(UNREADABLE_MESSAGE)
    text = "".join(
        part["text"] for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )
    if not text.strip():
        raise AnalysisError("No analysis was returned for this image.")
    return text


# ---------------------------------------------------------------------------
# Wrapper
# ---------------------------------------------------------------------------

class GeminiWrapper:
    """Thin client for the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        model_name: str,
        api_key: str,
        *,
        api_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        timeout: float = 60.0,
        mock: bool = False,
    ) -> None:
        self.model_name = model_name
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.mock = mock

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model_name}:generateContent"

    def load(self) -> None:
        if self.mock:
            logger.info("Gemini running in MOCK mode.")
            return
        if not self.api_key:
            logger.warning("No Gemini API key configured; analysis requests will fail.")
        logger.info("Gemini client ready (model=%s).", self.model_name)

    def build_payload(self, image: EncodedImage, prompt: str) -> dict[str, Any]:
        mime_type = _MIME_ALIASES.get(image.mime_type, image.mime_type)
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {"inlineData": {"mimeType": mime_type, "data": image.data}},
                    ],
                }
            ]
        }

    # ---- Analysis -----------------------------------------------------------

    def analyze_sync(self, image: EncodedImage, prompt: str = TREE_ANALYSIS_PROMPT) -> str:
        if self.mock:
            return DEFAULT_ANALYSIS
        if not self.api_key:
            raise AnalysisError("The analysis service is not configured (missing API key).")

        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        try:
            response = requests.post(
                self.endpoint,
                headers=headers,
                json=self.build_payload(image, prompt),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as exc:
            logger.warning("Gemini request timed out after %.0fs", self.timeout)
            raise AnalysisError("The analysis service timed out. Please try again.") from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("Gemini request failed: %s", exc)
            raise AnalysisError(f"Network error: {exc}") from exc

        if not response.ok:
            detail = _error_message(response)
            logger.warning("Gemini returned %d: %.300s", response.status_code, detail)
            raise AnalysisError(detail or None)

        try:
            body = response.json()
        except ValueError as exc:
            raise AnalysisError(UNREADABLE_MESSAGE) from exc

        text = extract_text(body)
        logger.debug("Gemini raw output (first 500 chars): %s", text[:500])
        return text

    async def analyze(self, image: EncodedImage, prompt: str = TREE_ANALYSIS_PROMPT) -> str:
        """Analyze *image*; suspends until the service answers. Raises AnalysisError."""
        return await asyncio.to_thread(self.analyze_sync, image, prompt)
