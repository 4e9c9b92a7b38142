"""Exporter SPI and implementations."""

from .base import BaseExporter
from .console_exporter import ConsoleExporter
from .file_exporter import FileExporter

__all__ = ["BaseExporter", "ConsoleExporter", "FileExporter"]
