"""
Document metadata generation.

Two implementations share one interface and are picked once at startup by
``build_metadata_service``:

* ``OpenAIMetadataService`` asks the OpenAI chat completions API for a summary,
  tags, course codes, difficulty and flashcards.
* ``FallbackMetadataService`` is fully deterministic and is used when no API key
  is configured. The live service also falls back to it field by field when a
  call fails, so an upload never fails because of metadata.
"""
from io import BytesIO
from typing import Any, Dict, List, Optional
import asyncio
import json
import logging
import re

import httpx
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app.core.errors import ValidationError
from app.models.document import DocumentMetadata, FlashcardContent

logger = logging.getLogger(__name__)

COURSE_CODE_PATTERN = re.compile(r'\b[A-Z]{2,4}\d{4,5}\b')
DEFAULT_DIFFICULTY = 3
MAX_PROMPT_CHARS = 8000
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

# Anything the live model returns may be malformed; these degrade to the fallback
MODEL_OUTPUT_ERRORS = (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError)

def extract_text_from_pdf(content: bytes) -> str:
    try:
        reader = PdfReader(BytesIO(content))
        return "\n".join((page.extract_text() or "") for page in reader.pages)
    except (PyPdfError, ValueError) as e:
        logger.error(f"Error extracting text from PDF: {str(e)}")
        raise ValidationError("Failed to extract text from PDF") from e

def clamp_difficulty(value: Any) -> int:
    try:
        difficulty = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_DIFFICULTY
    return max(1, min(5, difficulty))

class FallbackMetadataService:
    """Deterministic metadata used when no language model is available"""

    async def summarize(self, text: str) -> Optional[str]:
        return None

    async def tag(self, text: str) -> List[str]:
        return []

    async def detect_course_codes(self, text: str) -> List[str]:
        # dict keeps first-seen order
        return list(dict.fromkeys(COURSE_CODE_PATTERN.findall(text)))

    async def estimate_difficulty(self, text: str) -> int:
        return DEFAULT_DIFFICULTY

    async def generate_flashcards(self, text: str) -> List[FlashcardContent]:
        return []

    async def analyze(self, text: str) -> DocumentMetadata:
        summary, tags, course_codes, difficulty, flashcards = await asyncio.gather(
            self.summarize(text),
            self.tag(text),
            self.detect_course_codes(text),
            self.estimate_difficulty(text),
            self.generate_flashcards(text),
        )
        return DocumentMetadata(
            summary=summary,
            tags=tags,
            course_codes=course_codes,
            difficulty=difficulty,
            flashcards=flashcards,
        )

class OpenAIMetadataService(FallbackMetadataService):
    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 30.0, transport=None):
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._transport = transport

    async def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int, json_mode: bool = True) -> str:
        payload: Dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(
                OPENAI_CHAT_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            response.raise_for_status()
            data = response.json()
        content = data["choices"][0]["message"]["content"]
        if content is None:
            return ""
        if not isinstance(content, str):
            raise ValueError("Expected text content from the model")
        return content

    async def _complete_json(self, system_prompt: str, user_prompt: str, max_tokens: int) -> Dict[str, Any]:
        content = await self._complete(system_prompt, user_prompt, max_tokens)
        parsed = json.loads(content or "{}")
        if not isinstance(parsed, dict):
            raise ValueError("Expected a JSON object")
        return parsed

    def _string_list(self, parsed: Dict[str, Any], key: str) -> List[str]:
        values = parsed.get(key) or []
        if not isinstance(values, list):
            raise ValueError(f"Expected \"{key}\" to be a list")
        return [str(value) for value in values if isinstance(value, (str, int, float))]

    async def summarize(self, text: str) -> Optional[str]:
        try:
            summary = await self._complete(
                "You are a helpful assistant that creates concise summaries of academic documents. "
                "Summarize the key points in 2-3 sentences.",
                f"Summarize this document:\n\n{text[:MAX_PROMPT_CHARS]}",
                max_tokens=200,
                json_mode=False,
            )
            return summary.strip() or None
        except MODEL_OUTPUT_ERRORS as e:
            logger.warning(f"Summary generation failed, using fallback: {str(e)}")
            return await super().summarize(text)

    async def tag(self, text: str) -> List[str]:
        try:
            parsed = await self._complete_json(
                "You are a helpful assistant that generates relevant tags for academic documents. "
                "Return a JSON object with a \"tags\" array of 5-10 strings.",
                f"Generate tags for this document:\n\n{text[:MAX_PROMPT_CHARS]}",
                max_tokens=200,
            )
            return self._string_list(parsed, "tags")
        except MODEL_OUTPUT_ERRORS as e:
            logger.warning(f"Tag generation failed, using fallback: {str(e)}")
            return await super().tag(text)

    async def detect_course_codes(self, text: str) -> List[str]:
        try:
            parsed = await self._complete_json(
                "You are a helpful assistant that detects university course codes in text. "
                "Course codes are typically 2-4 letters followed by 4-5 numbers (e.g., STK1110, MAT1125). "
                "Return a JSON object with a \"codes\" array.",
                f"Detect course codes in this text:\n\n{text[:MAX_PROMPT_CHARS]}",
                max_tokens=100,
            )
            return self._string_list(parsed, "codes")
        except MODEL_OUTPUT_ERRORS as e:
            logger.warning(f"Course code detection failed, using regex fallback: {str(e)}")
            return await super().detect_course_codes(text)

    async def estimate_difficulty(self, text: str) -> int:
        try:
            parsed = await self._complete_json(
                "You are a helpful assistant that estimates the difficulty of academic documents on a scale of 1-5, "
                "where 1 is very easy and 5 is very difficult. Return a JSON object with a \"difficulty\" number.",
                f"Estimate the difficulty of this document:\n\n{text[:MAX_PROMPT_CHARS]}",
                max_tokens=50,
            )
            return clamp_difficulty(parsed.get("difficulty", DEFAULT_DIFFICULTY))
        except MODEL_OUTPUT_ERRORS as e:
            logger.warning(f"Difficulty estimation failed, using default: {str(e)}")
            return await super().estimate_difficulty(text)

    async def generate_flashcards(self, text: str) -> List[FlashcardContent]:
        try:
            parsed = await self._complete_json(
                "You are a helpful assistant that generates study flashcards from academic content. "
                "Return a JSON object with a \"flashcards\" array, where each flashcard has \"front\" and \"back\" properties.",
                f"Generate 10-15 flashcards from this document:\n\n{text[:MAX_PROMPT_CHARS]}",
                max_tokens=2000,
            )
            cards = parsed.get("flashcards") or []
            if not isinstance(cards, list):
                raise ValueError("Expected \"flashcards\" to be a list")
            return [
                FlashcardContent(front=str(card["front"]), back=str(card["back"]))
                for card in cards
                if isinstance(card, dict) and card.get("front") and card.get("back")
            ]
        except MODEL_OUTPUT_ERRORS as e:
            logger.warning(f"Flashcard generation failed, using fallback: {str(e)}")
            return await super().generate_flashcards(text)

def build_metadata_service(config):
    if config.OPENAI_API_KEY:
        return OpenAIMetadataService(
            api_key=config.OPENAI_API_KEY,
            model=config.OPENAI_MODEL,
            timeout=config.OPENAI_TIMEOUT_SECONDS,
        )
    logger.warning("OPENAI_API_KEY is not set, document metadata uses deterministic fallbacks")
    return FallbackMetadataService()
