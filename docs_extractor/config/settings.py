"""Application settings and configuration schema."""

import os
from typing import List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel


class ConfigError(RuntimeError):
    """A required configuration value is missing."""


class ServerCfg(BaseModel):
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = ["*"]


class ExtractorCfg(BaseModel):
    """Configuration for the scrape-and-generate operation."""
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    scrape_timeout: float = 30.0
    firecrawl_base_url: str = "https://api.firecrawl.dev"
    max_page_chars: int = 60000


class Paths(BaseModel):
    """File and directory paths configuration."""
    generated_docs: str = "generated-docs"


class Settings(BaseModel):
    """Main application settings."""
    server: ServerCfg = ServerCfg()
    extractor: ExtractorCfg = ExtractorCfg()
    paths: Paths = Paths()
    anthropic_api_key: Optional[str] = None
    firecrawl_api_key: Optional[str] = None
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        A ``.env`` file in the working directory is loaded first when reading
        the process environment. Unset variables keep their defaults.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        server = ServerCfg()
        extractor = ExtractorCfg()
        paths = Paths()

        if env.get("DOCS_EXTRACTOR_HOST"):
            server.host = env["DOCS_EXTRACTOR_HOST"]
        if env.get("DOCS_EXTRACTOR_PORT"):
            server.port = int(env["DOCS_EXTRACTOR_PORT"])
        if env.get("DOCS_EXTRACTOR_CORS_ORIGINS"):
            server.cors_origins = [
                origin.strip()
                for origin in env["DOCS_EXTRACTOR_CORS_ORIGINS"].split(",")
                if origin.strip()
            ]
        if env.get("DOCS_EXTRACTOR_MODEL"):
            extractor.model = env["DOCS_EXTRACTOR_MODEL"]
        if env.get("DOCS_EXTRACTOR_DOCS_DIR"):
            paths.generated_docs = env["DOCS_EXTRACTOR_DOCS_DIR"]

        return cls(
            server=server,
            extractor=extractor,
            paths=paths,
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
            firecrawl_api_key=env.get("FIRECRAWL_API_KEY") or None,
            log_level=env.get("DOCS_EXTRACTOR_LOG_LEVEL", "INFO"),
            log_json=env.get("DOCS_EXTRACTOR_LOG_JSON", "").lower() in ("1", "true", "yes"),
        )


def require_env(name: str, env: Optional[Mapping[str, str]] = None) -> str:
    """Return an environment variable, raising ConfigError if unset or empty."""
    env = os.environ if env is None else env
    value = env.get(name)
    if not value:
        raise ConfigError(f"Environment variable {name} is not set")
    return value
