"""
Config file schema.

JSON keys are camelCase (as written by `seo-pilot setup`); Python attributes
are snake_case.
"""

from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SiteConfig(_Model):
    url: str
    sitemap: str

    @field_validator("url", "sitemap")
    @classmethod
    def _require_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("Invalid url")
        return value


class IndexNowConfig(_Model):
    key: str


class GoogleConfig(_Model):
    service_account_path: str
    site_url: str


class BingConfig(_Model):
    api_key: str
    site_url: str


class CustomSearchConfig(_Model):
    api_key: str
    engine_id: str


class ApisConfig(_Model):
    indexnow: Optional[IndexNowConfig] = None
    google: Optional[GoogleConfig] = None
    bing: Optional[BingConfig] = None
    custom_search: Optional[CustomSearchConfig] = None


class DiscoverConfig(_Model):
    sites: List[str] = Field(default_factory=lambda: ["reddit.com", "quora.com"])
    results_per_keyword: int = Field(default=5, gt=0)
    directory_queries: Optional[List[str]] = None


class Config(_Model):
    version: str
    site: SiteConfig
    keywords: List[str] = Field(default_factory=list)
    apis: ApisConfig = Field(default_factory=ApisConfig)
    discover: DiscoverConfig = Field(default_factory=DiscoverConfig)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
