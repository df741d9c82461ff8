"""
Unit tests for docs_extractor/generation/extractor.py

External services are replaced: Firecrawl with httpx.MockTransport,
Anthropic with a fake client, and the extractor's collaborators with stubs.
"""

import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from docs_extractor.config.settings import ConfigError
from docs_extractor.generation import (
    AnthropicGenerator,
    DocsExtractor,
    FirecrawlScraper,
    GenerationError,
    ScrapeError,
)
from docs_extractor.ops import REQUIRED_FIELDS, JobCoordinator, build_extract_operation
from docs_extractor.persist import ArtifactStore

pytestmark = pytest.mark.asyncio

PAYLOAD = {"docsUrl": "https://docs.example.com", "extractionType": "Quick installation guide"}


class StubScraper:
    def __init__(self, markdown="# Example\n\nInstall with pip."):
        self.markdown = markdown
        self.urls = []

    async def scrape(self, url):
        self.urls.append(url)
        return self.markdown


class StubGenerator:
    def __init__(self, text="# Installation\n> Source: https://docs.example.com\n"):
        self.text = text
        self.calls = []

    async def generate(self, system, prompt, model=None):
        self.calls.append({"system": system, "prompt": prompt, "model": model})
        return self.text


class FakeMessages:
    def __init__(self, response):
        self.response = response
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.response


def firecrawl_transport(status_code=200, body=None, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body if body is not None else {})

    return httpx.MockTransport(handler)


# ============================================================================
# FirecrawlScraper
# ============================================================================

async def test_firecrawl_scrape_returns_markdown():
    seen = []
    transport = firecrawl_transport(
        body={"success": True, "data": {"markdown": "# Page"}},
        seen=seen,
    )
    scraper = FirecrawlScraper(api_key="fc-test", transport=transport)

    assert await scraper.scrape("https://docs.example.com") == "# Page"

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.firecrawl.dev/v2/scrape"
    assert request.headers["Authorization"] == "Bearer fc-test"
    body = json.loads(request.content)
    assert body["url"] == "https://docs.example.com"
    assert body["formats"] == ["markdown"]


async def test_firecrawl_http_error_raises():
    scraper = FirecrawlScraper(api_key="fc-test", transport=firecrawl_transport(status_code=502))

    with pytest.raises(ScrapeError, match="HTTP 502"):
        await scraper.scrape("https://docs.example.com")


async def test_firecrawl_unsuccessful_response_raises():
    transport = firecrawl_transport(body={"success": False, "error": "Blocked by robots.txt"})
    scraper = FirecrawlScraper(api_key="fc-test", transport=transport)

    with pytest.raises(ScrapeError, match="Blocked by robots.txt"):
        await scraper.scrape("https://docs.example.com")


async def test_firecrawl_empty_page_raises():
    transport = firecrawl_transport(body={"success": True, "data": {"markdown": "  "}})
    scraper = FirecrawlScraper(api_key="fc-test", transport=transport)

    with pytest.raises(ScrapeError, match="No content"):
        await scraper.scrape("https://docs.example.com")


# ============================================================================
# AnthropicGenerator
# ============================================================================

async def test_anthropic_generator_joins_text_blocks():
    response = SimpleNamespace(content=[
        SimpleNamespace(type="text", text="# Title\n"),
        SimpleNamespace(type="tool_use", name="ignored"),
        SimpleNamespace(type="text", text="Body"),
    ])
    messages = FakeMessages(response)
    generator = AnthropicGenerator(model="claude-default", max_tokens=512,
                                   client=SimpleNamespace(messages=messages))

    text = await generator.generate("system text", "user text", model="claude-override")

    assert text == "# Title\nBody"
    call = messages.calls[0]
    assert call["model"] == "claude-override"
    assert call["max_tokens"] == 512
    assert call["system"] == "system text"
    assert call["messages"] == [{"role": "user", "content": "user text"}]


# ============================================================================
# DocsExtractor
# ============================================================================

async def test_extract_returns_result_and_saves_artifact(artifacts, docs_dir):
    scraper = StubScraper()
    generator = StubGenerator()
    extractor = DocsExtractor(scraper, generator, artifacts=artifacts, model="claude-default")

    result = await extractor.extract(PAYLOAD)

    assert scraper.urls == ["https://docs.example.com"]
    assert result["response"]["content"] == [
        {"type": "text", "text": "# Installation\n> Source: https://docs.example.com"}
    ]
    assert result["sourceUrl"] == "https://docs.example.com"
    assert result["model"] == "claude-default"
    assert (docs_dir / result["artifact"]).read_text(encoding="utf-8").startswith("# Installation")

    prompt = generator.calls[0]["prompt"]
    assert "Quick installation guide" in prompt
    assert "Install with pip." in prompt


async def test_extract_uses_model_override_and_truncates_page():
    generator = StubGenerator()
    extractor = DocsExtractor(StubScraper("x" * 500), generator, max_page_chars=100)

    result = await extractor.extract({**PAYLOAD, "model": "claude-other"})

    assert generator.calls[0]["model"] == "claude-other"
    assert "x" * 100 in generator.calls[0]["prompt"]
    assert "x" * 101 not in generator.calls[0]["prompt"]
    assert result["artifact"] is None


async def test_extract_empty_generation_raises():
    extractor = DocsExtractor(StubScraper(), StubGenerator(text="  \n"))

    with pytest.raises(GenerationError):
        await extractor.extract(PAYLOAD)


async def test_extract_save_failure_does_not_fail(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    extractor = DocsExtractor(StubScraper(), StubGenerator(), artifacts=ArtifactStore(blocker))

    result = await extractor.extract(PAYLOAD)

    assert result["artifact"] is None
    assert result["response"]["content"][0]["text"].startswith("# Installation")


async def test_from_settings_requires_api_keys(settings, monkeypatch):
    monkeypatch.delenv("FIRECRAWL_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    with pytest.raises(ConfigError, match="FIRECRAWL_API_KEY"):
        DocsExtractor.from_settings(settings)


async def test_from_settings_builds_real_collaborators(settings):
    configured = settings.model_copy(update={
        "anthropic_api_key": "sk-ant-test",
        "firecrawl_api_key": "fc-test",
    })

    extractor = DocsExtractor.from_settings(configured)

    assert isinstance(extractor.scraper, FirecrawlScraper)
    assert extractor.scraper.api_key == "fc-test"
    assert isinstance(extractor.generator, AnthropicGenerator)
    assert extractor.model == configured.extractor.model


async def test_missing_keys_fail_the_job_not_the_submit(store, settings, monkeypatch):
    monkeypatch.delenv("FIRECRAWL_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    coordinator = JobCoordinator(
        store=store,
        operation=build_extract_operation(settings),
        required_fields=REQUIRED_FIELDS,
    )
    job_id = coordinator.submit(PAYLOAD)
    job = await coordinator.wait(job_id, timeout=1)

    assert job.status == "failed"
    assert job.error == "Environment variable FIRECRAWL_API_KEY is not set"


# ============================================================================
# Client cleanup
# ============================================================================

class FakeAsyncAnthropic:
    instances = []

    def __init__(self, api_key=None):
        self.api_key = api_key
        self.closed = False
        self.messages = FakeMessages(SimpleNamespace(content=[SimpleNamespace(type="text", text="# Doc")]))
        FakeAsyncAnthropic.instances.append(self)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_anthropic(monkeypatch):
    FakeAsyncAnthropic.instances = []
    monkeypatch.setattr(anthropic, "AsyncAnthropic", FakeAsyncAnthropic)
    return FakeAsyncAnthropic


async def test_generator_closes_client_it_created(fake_anthropic):
    generator = AnthropicGenerator(api_key="sk-ant-test")

    await generator.aclose()

    assert fake_anthropic.instances[0].closed is True


async def test_generator_leaves_injected_client_open():
    client = FakeAsyncAnthropic()
    generator = AnthropicGenerator(client=client)

    await generator.aclose()

    assert client.closed is False


async def test_each_job_closes_its_client(store, settings, fake_anthropic, monkeypatch):
    async def scrape(self, url):
        if "broken" in url:
            raise ScrapeError(f"No content scraped from {url}")
        return "# Page"

    monkeypatch.setattr(FirecrawlScraper, "scrape", scrape)
    configured = settings.model_copy(update={
        "anthropic_api_key": "sk-ant-test",
        "firecrawl_api_key": "fc-test",
    })
    coordinator = JobCoordinator(
        store=store,
        operation=build_extract_operation(configured),
        required_fields=REQUIRED_FIELDS,
    )

    urls = ["https://docs.example.com/a", "https://docs.example.com/b", "https://broken.example.com"]
    jobs = [
        await coordinator.wait(coordinator.submit({**PAYLOAD, "docsUrl": url}), timeout=1)
        for url in urls
    ]

    assert [job.status for job in jobs] == ["completed", "completed", "failed"]
    assert len(fake_anthropic.instances) == 3
    assert all(client.closed for client in fake_anthropic.instances)
