"""Document extraction exports."""

from .extractor import ExtractedDocument, check_upload, extract_document

__all__ = ["ExtractedDocument", "check_upload", "extract_document"]
