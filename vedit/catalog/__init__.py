"""
Read-only catalogs: operation parameters, presets and templates.
"""

from vedit.catalog.operations import OperationCatalog, ParamSpec, FieldSpec
from vedit.catalog.presets import PresetMapping, ColorPreset, EffectPreset
from vedit.catalog.templates import TemplateCatalog, Template, TemplateOperation

__all__ = [
    "OperationCatalog",
    "ParamSpec",
    "FieldSpec",
    "PresetMapping",
    "ColorPreset",
    "EffectPreset",
    "TemplateCatalog",
    "Template",
    "TemplateOperation",
]
