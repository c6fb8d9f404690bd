"""overql function classifier: window function name → category and ordering rules."""
from overql.classify.registry import (
    DEFAULT_CLASSIFIER,
    FunctionClassifier,
    OrderSource,
    WindowCategory,
    WindowFunctionSpec,
    classify,
    rolling,
)

__all__ = [
    "DEFAULT_CLASSIFIER",
    "FunctionClassifier",
    "OrderSource",
    "WindowCategory",
    "WindowFunctionSpec",
    "classify",
    "rolling",
]
