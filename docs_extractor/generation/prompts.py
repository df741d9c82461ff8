"""Prompt text for documentation extraction."""

SYSTEM_PROMPT = """You are a documentation extraction agent. Turn the provided documentation page into clean markdown.

RULES:
- Output ONLY the final markdown document
- No meta-commentary ("I'll help you...", "Here is...") and no narration of your process
- Start directly with the document title

FORMAT:
# [Document Title]
> Source: [original URL]

[Extracted content with headings, code blocks, and links]

Be concise and practical."""


def build_user_prompt(docs_url: str, extraction_type: str, page_markdown: str) -> str:
    """User message combining the request with the scraped page."""
    return f"""Extract from {docs_url}: {extraction_type}

Start with:
# [Title for {extraction_type}]
> Source: {docs_url}

Then include:
- Installation/setup (if relevant)
- Key concepts
- 1-2 code examples
- Links to original docs

Scraped page content:
<page>
{page_markdown}
</page>

Output the document directly."""
