from .extract import DocumentExtractionError, detect_file_type, extract_text
from .models import ExtractedDocument

__all__ = ["DocumentExtractionError", "ExtractedDocument", "detect_file_type", "extract_text"]
