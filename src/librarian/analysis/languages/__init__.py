"""Language-specific fact analyzers."""

from .python_analyzer import PythonFactAnalyzer
from .typescript_analyzer import TypeScriptFactAnalyzer

__all__ = ["PythonFactAnalyzer", "TypeScriptFactAnalyzer"]
