"""Query classification and source routing."""

from ragfusion.routing.router import DelegateClassifier, KeywordClassifier, Router

__all__ = ["DelegateClassifier", "KeywordClassifier", "Router"]
