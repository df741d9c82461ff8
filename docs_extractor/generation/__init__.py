"""Scrape-and-generate pipeline for documentation extraction."""
from .prompts import SYSTEM_PROMPT, build_user_prompt
from .extractor import (
    DocsExtractor, FirecrawlScraper, AnthropicGenerator,
    Scraper, Generator, ScrapeError, GenerationError
)

__all__ = [
    'SYSTEM_PROMPT', 'build_user_prompt',
    'DocsExtractor', 'FirecrawlScraper', 'AnthropicGenerator',
    'Scraper', 'Generator', 'ScrapeError', 'GenerationError'
]
