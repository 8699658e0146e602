from .normalizer import html_to_markdown
from .processor import ResourcePipeline
from .scanner import AttachmentReferenceScanner, ImageReferenceScanner, ResourceReference, ResourceReferenceScanner

__all__ = [
    "html_to_markdown",
    "ResourcePipeline",
    "ResourceReference",
    "ResourceReferenceScanner",
    "ImageReferenceScanner",
    "AttachmentReferenceScanner",
]
