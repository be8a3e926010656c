"""Export format handlers (script, YAML, JSON, DOT, Mermaid)."""

from __future__ import annotations

from storyloom.export.base import Exporter, ExportOptions
from storyloom.export.json_exporter import JsonExporter
from storyloom.export.map_exporter import DotExporter, MermaidExporter
from storyloom.export.script_exporter import ScriptExporter
from storyloom.export.yaml_exporter import YamlExporter

_EXPORTERS: dict[str, type[Exporter]] = {
    "script": ScriptExporter,
    "yaml": YamlExporter,
    "json": JsonExporter,
    "dot": DotExporter,
    "mermaid": MermaidExporter,
}

EXPORT_FORMATS = tuple(_EXPORTERS)


def get_exporter(format_name: str) -> Exporter:
    """Get an exporter instance by format name.

    Args:
        format_name: Export format (e.g., "script", "yaml", "dot").

    Returns:
        Exporter instance.

    Raises:
        ValueError: If the format is not supported.
    """
    cls = _EXPORTERS.get(format_name)
    if cls is None:
        supported = ", ".join(sorted(_EXPORTERS))
        msg = f"Unknown export format '{format_name}'. Supported: {supported}"
        raise ValueError(msg)
    return cls()


__all__ = [
    "EXPORT_FORMATS",
    "DotExporter",
    "ExportOptions",
    "Exporter",
    "JsonExporter",
    "MermaidExporter",
    "ScriptExporter",
    "YamlExporter",
    "get_exporter",
]
