"""
Documentation extraction: scrape a page, have an LLM rewrite it as markdown.

The scraping service (Firecrawl) and the model provider (Anthropic) are
external; this module only wires them together and shapes the result.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Protocol

import anthropic
import httpx

from ..config.settings import Settings, require_env
from ..persist.artifacts import ArtifactStore
from .prompts import SYSTEM_PROMPT, build_user_prompt


class ScrapeError(RuntimeError):
    """The scraping service did not return usable page content."""


class GenerationError(RuntimeError):
    """The model did not return a document."""


class Scraper(Protocol):
    async def scrape(self, url: str) -> str:
        ...


class Generator(Protocol):
    async def generate(self, system: str, prompt: str, model: Optional[str] = None) -> str:
        ...


class FirecrawlScraper:
    """Fetches a page as markdown through the Firecrawl scrape API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.firecrawl.dev",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.logger = logging.getLogger(__name__)

    async def scrape(self, url: str) -> str:
        payload = {
            "url": url,
            "formats": ["markdown"],
            "onlyMainContent": True,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            response = await client.post("/v2/scrape", json=payload, headers=headers)

        if response.status_code >= 400:
            raise ScrapeError(f"Firecrawl returned HTTP {response.status_code} for {url}")

        data = response.json()
        if not data.get("success", False):
            raise ScrapeError(data.get("error") or f"Firecrawl could not scrape {url}")

        markdown = (data.get("data") or {}).get("markdown") or ""
        if not markdown.strip():
            raise ScrapeError(f"No content scraped from {url}")

        self.logger.info(f"Scraped {len(markdown)} chars from {url}")
        return markdown


class AnthropicGenerator:
    """Generates text with the Anthropic Messages API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
        client: Optional[Any] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self._owns_client = client is None
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def generate(self, system: str, prompt: str, model: Optional[str] = None) -> str:
        response = await self.client.messages.create(
            model=model or self.model,
            max_tokens=self.max_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )

        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

    async def aclose(self) -> None:
        """Close the HTTP connection pool of a client this generator created."""
        if self._owns_client:
            await self.client.close()


class DocsExtractor:
    """Runs one documentation extraction end to end."""

    def __init__(
        self,
        scraper: Scraper,
        generator: Generator,
        artifacts: Optional[ArtifactStore] = None,
        model: str = "claude-sonnet-4-20250514",
        max_page_chars: int = 60000,
    ):
        self.scraper = scraper
        self.generator = generator
        self.artifacts = artifacts
        self.model = model
        self.max_page_chars = max_page_chars
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings, artifacts: Optional[ArtifactStore] = None) -> "DocsExtractor":
        """
        Build an extractor backed by Firecrawl and Anthropic.

        Raises:
            ConfigError: if either API key is missing from settings and the
                environment
        """
        cfg = settings.extractor
        firecrawl_key = settings.firecrawl_api_key or require_env("FIRECRAWL_API_KEY")
        anthropic_key = settings.anthropic_api_key or require_env("ANTHROPIC_API_KEY")

        return cls(
            scraper=FirecrawlScraper(
                api_key=firecrawl_key,
                base_url=cfg.firecrawl_base_url,
                timeout=cfg.scrape_timeout,
            ),
            generator=AnthropicGenerator(
                api_key=anthropic_key,
                model=cfg.model,
                max_tokens=cfg.max_tokens,
            ),
            artifacts=artifacts,
            model=cfg.model,
            max_page_chars=cfg.max_page_chars,
        )

    async def aclose(self) -> None:
        """Release the collaborators' connections, if they hold any."""
        for collaborator in (self.scraper, self.generator):
            aclose = getattr(collaborator, "aclose", None)
            if aclose is not None:
                await aclose()

    async def extract(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Extract documentation described by ``payload``.

        Args:
            payload: Submission with ``docsUrl``, ``extractionType`` and an
                optional ``model`` override

        Returns:
            Result payload; ``response.content`` holds the markdown as a text
            block, ``artifact`` the saved file name (None if saving failed)
        """
        docs_url = payload["docsUrl"]
        extraction_type = payload["extractionType"]
        model = payload.get("model") or self.model

        self.logger.info(f"Starting extraction from {docs_url}")

        page = await self.scraper.scrape(docs_url)
        if len(page) > self.max_page_chars:
            page = page[: self.max_page_chars]

        text = await self.generator.generate(
            SYSTEM_PROMPT,
            build_user_prompt(docs_url, extraction_type, page),
            model=model,
        )
        markdown = text.strip()
        if not markdown:
            raise GenerationError("Model returned an empty document")

        artifact = None
        if self.artifacts is not None:
            try:
                artifact = self.artifacts.save(markdown)
            except OSError as e:
                self.logger.error(f"Error saving generated document: {e}")

        self.logger.info(f"Extraction from {docs_url} completed")

        return {
            "response": {"content": [{"type": "text", "text": markdown}]},
            "artifact": artifact,
            "sourceUrl": docs_url,
            "model": model,
        }
