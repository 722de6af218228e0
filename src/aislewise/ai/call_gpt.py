"""OpenAI-backed categorizer, bulk parser and store scanner."""
import base64
import json
from typing import Any, Dict, List, Optional, Union

from openai import AsyncOpenAI, APIError as OpenAIAPIError
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from aislewise.config.settings import OpenAISettings, get_openai_settings
from aislewise.domain.types import AisleNode, Categorization, ParsedShoppingItem, StoreScanResult
from aislewise.utils.logger import get_logger
from .collaborators import SecretStore
from .errors import APIError, GPTError, ValidationError
from .models import AutoCategorizeResult, BulkImportResult, GPTConfig

API_KEY_SECRET = "openai_api_key"

CATEGORIZE_PROMPT = """You place grocery items into the aisles and sections of one store.

You receive a JSON object with an "item_name" and the store's "aisles", each
with its "sections".

Answer with a JSON object only:
{
  "aisle_name": "exact name of one of the given aisles",
  "section_name": "exact name of a section of that aisle, or null",
  "confidence": number between 0 and 1,
  "reasoning": "one short sentence"
}

Use the names exactly as given. Prefer the most common location when several
fit. Use null for section_name when no section fits."""

BULK_IMPORT_PROMPT = """You turn shopping lists into structured items. The input is free-form
text (lines, bullets, commas) or a photo of a written or printed list.

Answer with a JSON object only:
{
  "items": [
    {"name": "item name", "quantity": number or null, "unit": "unit or null", "notes": "extra details or null"}
  ]
}

Keep each name's singular or plural form as written and only lowercase it.
Split quantities and units from names ("2 lbs ground beef" gives quantity 2,
unit "lb", name "ground beef"). Use quantity 1 for vague amounts. Put brands
and preferences in notes. Include every item you can find."""

STORE_SCAN_PROMPT = """You read the directory sign of a grocery store from a photo.

Answer with a JSON object only:
{
  "aisles": [
    {"name": "aisle name", "sections": ["section name", "..."]}
  ]
}

Only list aisles and sections that are written on the sign. Keep names as
written, except numbered aisles, which are named "Aisle N". List departments
without a number (Produce, Bakery, Deli) first, then numbered aisles in
ascending order. Do not repeat a section within an aisle. Use an empty
sections list when an aisle shows none, and an empty aisles list when the
sign cannot be read."""


def resolve_categorization(
    result: AutoCategorizeResult,
    tree: List[AisleNode]
) -> Categorization:
    """
    Map aisle and section names from the model to ids in ``tree``.

    Names are compared case-insensitively. An unknown aisle gives no
    location; an unknown section keeps the aisle.

    Args:
        result: Validated model answer
        tree: Store layout the model was shown

    Returns:
        Matching ids, None where nothing matched
    """
    aisle_name = result.aisle_name.strip().lower()
    aisle = next((a for a in tree if a.name.strip().lower() == aisle_name), None)
    if aisle is None:
        return Categorization()

    section_id = None
    if result.section_name:
        section_name = result.section_name.strip().lower()
        section = next(
            (s for s in aisle.sections if s.name.strip().lower() == section_name),
            None
        )
        section_id = section.id if section else None
    return Categorization(aisle_id=aisle.id, section_id=section_id)


def _image_data_url(data: bytes) -> str:
    mime = "image/png" if data.startswith(b"\x89PNG") else "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


class GPTClient:
    """Shared plumbing for JSON-mode chat completions."""

    def __init__(
        self,
        secrets: Optional[SecretStore] = None,
        config: Optional[GPTConfig] = None,
        client: Optional[AsyncOpenAI] = None,
        settings: Optional[OpenAISettings] = None,
        retry_wait_min: float = 2
    ):
        """
        Initialize the client.

        Args:
            secrets: Store holding the API key under ``openai_api_key``
            config: Model settings, defaults from ``OpenAISettings``
            client: Preconfigured OpenAI client
            settings: OpenAI settings, the cached environment settings when None
            retry_wait_min: Minimum seconds between retries
        """
        self.settings = settings or get_openai_settings()
        self.config = config or GPTConfig(
            model=self.settings.MODEL,
            temperature=self.settings.TEMPERATURE,
            max_retries=self.settings.MAX_RETRIES,
            timeout=self.settings.TIMEOUT
        )
        self.secrets = secrets
        self._client = client
        self.retry_wait_min = retry_wait_min
        self.logger = get_logger(self.__class__.__name__)

    def _api_key(self) -> str:
        key = self.secrets.get(API_KEY_SECRET) if self.secrets is not None else None
        key = key or self.settings.API_KEY
        if not key:
            raise GPTError(
                "OpenAI API key is not configured",
                suggestions=["Save an API key in settings", "Set OPENAI_API_KEY"]
            )
        return key

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key(),
                timeout=self.config.timeout
            )
        return self._client

    async def _call_json(
        self,
        system_prompt: str,
        user_content: Union[str, List[Dict[str, Any]]]
    ) -> Dict[str, Any]:
        """
        Run a chat completion that must answer with a JSON object.

        Raises:
            APIError: If the API keeps failing after retries
            ValidationError: If the answer is not a JSON object
        """
        messages = [
            {'role': 'system', 'content': system_prompt},
            {'role': 'user', 'content': user_content},
        ]
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(OpenAIAPIError),
                stop=stop_after_attempt(self.config.max_retries),
                wait=wait_exponential(multiplier=1, min=self.retry_wait_min, max=10),
                reraise=True
            ):
                with attempt:
                    response = await self.client.chat.completions.create(
                        model=self.config.model,
                        messages=messages,
                        temperature=self.config.temperature,
                        response_format={'type': 'json_object'},
                        timeout=self.config.timeout
                    )
        except OpenAIAPIError as e:
            self.logger.exception("OpenAI API error")
            raise APIError(
                "Could not reach the language model",
                suggestions=["Try again in a few seconds", "Check the API key"],
                metadata={'model': self.config.model}
            ) from e

        content = response.choices[0].message.content or ""
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            self.logger.error("Model answer is not JSON", content=content[:200])
            raise ValidationError("Model answer is not valid JSON") from e
        if not isinstance(payload, dict):
            raise ValidationError("Model answer is not a JSON object")
        return payload


class GPTCategorizer(GPTClient):
    """Categorizer asking the model for an aisle and section by name."""

    async def categorize(self, item_name: str, tree: List[AisleNode]) -> Categorization:
        """
        Suggest a location for ``item_name`` within ``tree``.

        Args:
            item_name: Item to place
            tree: Live aisles and sections of the store

        Returns:
            Ids from ``tree``, empty when the model picked nothing known

        Raises:
            GPTError: On missing key, API failure or an invalid answer
        """
        if not tree:
            return Categorization()

        request = {
            'item_name': item_name,
            'aisles': [
                {
                    'id': aisle.id,
                    'name': aisle.name,
                    'sections': [{'id': s.id, 'name': s.name} for s in aisle.sections]
                }
                for aisle in tree
            ]
        }
        payload = await self._call_json(CATEGORIZE_PROMPT, json.dumps(request))
        try:
            result = AutoCategorizeResult.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid categorization answer",
                metadata={'item_name': item_name}
            ) from e

        categorization = resolve_categorization(result, tree)
        self.logger.info(
            "Item categorized",
            item_name=item_name,
            aisle=result.aisle_name,
            section=result.section_name,
            confidence=result.confidence,
            matched=categorization.aisle_id is not None
        )
        return categorization


class GPTBulkParser(GPTClient):
    """Bulk parser for pasted text or list photos."""

    async def parse(self, source: Union[str, bytes]) -> List[ParsedShoppingItem]:
        """
        Extract shopping items from ``source``.

        Args:
            source: Text, or image bytes (PNG or JPEG)

        Returns:
            Parsed items in source order

        Raises:
            GPTError: On missing key, API failure or an invalid answer
        """
        if isinstance(source, bytes):
            content: Union[str, List[Dict[str, Any]]] = [
                {'type': 'text', 'text': 'Extract the shopping list from this image.'},
                {'type': 'image_url', 'image_url': {'url': _image_data_url(source)}},
            ]
        else:
            if not source.strip():
                return []
            content = source

        payload = await self._call_json(BULK_IMPORT_PROMPT, content)
        try:
            result = BulkImportResult.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError("Invalid bulk import answer") from e

        self.logger.info("Shopping list parsed", items=len(result.items))
        return result.items


class GPTStoreScanner(GPTClient):
    """Store scanner reading a directory photo."""

    async def scan(self, image: bytes) -> StoreScanResult:
        """
        Extract aisles and their sections from a store directory photo.

        Args:
            image: Photo bytes (PNG or JPEG)

        Returns:
            Aisles in the order the store shows them

        Raises:
            GPTError: On missing key, API failure or an invalid answer
        """
        if not image:
            raise ValidationError("No image to scan")

        content = [
            {'type': 'text', 'text': 'Extract the aisles and sections from this store directory.'},
            {'type': 'image_url', 'image_url': {'url': _image_data_url(image)}},
        ]
        payload = await self._call_json(STORE_SCAN_PROMPT, content)
        try:
            result = StoreScanResult.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError("Invalid store scan answer") from e

        self.logger.info(
            "Store directory scanned",
            aisles=len(result.aisles),
            sections=sum(len(a.sections) for a in result.aisles)
        )
        return result
