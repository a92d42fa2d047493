import logging
import os
from typing import List, Literal

from pydantic import BaseModel, Field

DEFAULT_MARKDOWN_TAGS = [
    "p", "br", "em", "strong", "b", "i", "a", "ul", "ol", "li", "code", "pre",
    "blockquote", "h1", "h2", "h3", "h4", "h5", "h6", "hr", "img",
]


class Settings(BaseModel):
    cache_ttl: float = 60
    markdown_tags: List[str] = Field(default_factory=lambda: list(DEFAULT_MARKDOWN_TAGS))
    # what to do with a JSON column that does not decode
    bad_json: Literal["null", "raise"] = "null"
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        values = {}
        if environ.get("ROWMODEL_CACHE_TTL"):
            values["cache_ttl"] = environ["ROWMODEL_CACHE_TTL"]
        if environ.get("ROWMODEL_MARKDOWN_TAGS"):
            values["markdown_tags"] = [
                tag.strip() for tag in environ["ROWMODEL_MARKDOWN_TAGS"].split(",") if tag.strip()
            ]
        if environ.get("ROWMODEL_BAD_JSON"):
            values["bad_json"] = environ["ROWMODEL_BAD_JSON"]
        if environ.get("ROWMODEL_LOG_LEVEL"):
            values["log_level"] = environ["ROWMODEL_LOG_LEVEL"].upper()
        return cls(**values)


def configure_logging(settings=None):
    settings = settings or Settings()
    logger = logging.getLogger("rowmodel")
    if not logger.handlers:
        logging.basicConfig(level=settings.log_level)
    logger.setLevel(settings.log_level)
    return logger
