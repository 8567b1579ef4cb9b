"""Source analysis: parsing and structural fact extraction."""

from .ast_parser import ASTParser
from .base import BaseFactAnalyzer, FactExtractionError
from .fact_extractor import ASTFactExtractor, EXCLUDED_DIRS, is_excluded_dir, relative_path
from .languages import PythonFactAnalyzer, TypeScriptFactAnalyzer

__all__ = [
    "ASTParser",
    "BaseFactAnalyzer",
    "FactExtractionError",
    "ASTFactExtractor",
    "EXCLUDED_DIRS",
    "is_excluded_dir",
    "relative_path",
    "PythonFactAnalyzer",
    "TypeScriptFactAnalyzer",
]
