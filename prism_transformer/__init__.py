"""
Prism Transformer - LLM-backed content transformations for Django.

Send text, URL or media content through a prompt-driven transformer, with
both the fetched content and the transformation result cached.

Example usage:
    from prism_transformer import BaseTransformer, PrismTransformer

    class ArticleSummarizer(BaseTransformer):
        def prompt(self) -> str:
            return "Summarize the following article in 2-3 sentences:"

    result = PrismTransformer().text(article).using(ArticleSummarizer).transform()
"""

from .base import BaseTransformer, ProcessesResults, Transformer, ValidatesInput
from .cache import UNSET, ResultCache, cache_identity
from .conf import TransformerConfig, get_config
from .engine import TransformerOptions, execute_transformation, resolve_client_options
from .enums import Provider
from .exceptions import (
    FetchException,
    InvalidHandler,
    InvalidInputException,
    InvalidMediaKind,
    RateLimitExceededException,
    TransformerException,
)
from .fetchers import BaseContentFetcher, HttpContentFetcher
from .router import PendingTransformation, PrismTransformer, run_transformation
from .value_objects import (
    QueueableMedia,
    TransformerMetadata,
    TransformerResult,
    decode_media,
    encode_media,
)

__all__ = [
    # Transformers
    "Transformer",
    "BaseTransformer",
    "ValidatesInput",
    "ProcessesResults",
    "TransformerOptions",
    "execute_transformation",
    "resolve_client_options",
    # Routing
    "PrismTransformer",
    "PendingTransformation",
    "run_transformation",
    # Caching
    "UNSET",
    "ResultCache",
    "cache_identity",
    # Content
    "BaseContentFetcher",
    "HttpContentFetcher",
    "QueueableMedia",
    "encode_media",
    "decode_media",
    # Values
    "Provider",
    "TransformerConfig",
    "TransformerMetadata",
    "TransformerResult",
    "get_config",
    # Exceptions
    "TransformerException",
    "FetchException",
    "InvalidHandler",
    "InvalidInputException",
    "InvalidMediaKind",
    "RateLimitExceededException",
]
