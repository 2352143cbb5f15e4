"""HTML email to Bee JSON conversion toolkit."""

from .client import ConversionClient
from .config import AppConfig, load_config
from .core import ConversionError, ConversionService, HtmlValidationError, RemoteConversionError
from .models import (
    BatchItem,
    BatchOutcome,
    ConversionFailure,
    ConversionOptions,
    ConversionResult,
    ConversionSuccess,
    ErrorType,
)
from .normalizer import normalize

__all__ = [
    "AppConfig",
    "BatchItem",
    "BatchOutcome",
    "ConversionClient",
    "ConversionError",
    "ConversionFailure",
    "ConversionOptions",
    "ConversionResult",
    "ConversionService",
    "ConversionSuccess",
    "ErrorType",
    "HtmlValidationError",
    "RemoteConversionError",
    "load_config",
    "normalize",
]
