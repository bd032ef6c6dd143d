"""
Preview renderer - transformation descriptors and delivery URLs.
"""

from vedit.preview.transform import TransformationCompiler, TransformationDescriptor
from vedit.preview.url import PreviewUrlBuilder

__all__ = ["TransformationCompiler", "TransformationDescriptor", "PreviewUrlBuilder"]
