from marrow.extractors.factory import ExtractorFactory
from marrow.extractors.orchestrator import FieldExtractionOrchestrator

__all__ = ["ExtractorFactory", "FieldExtractionOrchestrator"]
