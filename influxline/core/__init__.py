"""Core configuration package initialization."""

from .logging_config import LoggingConfigurator
from .writer_config import WriterConfig

__all__ = ['LoggingConfigurator', 'WriterConfig']
