"""Convert legacy HTML fragments into the restricted HTML accepted by rich-text editors."""

from .core import ConversionConfig, ParserConfig, convert
from .version import __version__

__all__ = ["ConversionConfig", "ParserConfig", "convert", "__version__"]
