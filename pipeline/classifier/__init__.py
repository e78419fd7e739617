"""Classification stage: shortcuts, prompt, oracle and the classifier itself."""

from pipeline.classifier.classify import (
    ClassificationSummary,
    Classifier,
    result_from_judgment,
    summarize,
)
from pipeline.classifier.oracle import (
    ClassificationOracle,
    Judgment,
    LangChainOracle,
    parse_judgment,
)
from pipeline.classifier.prompt import build_classification_prompt

__all__ = [
    "ClassificationOracle",
    "ClassificationSummary",
    "Classifier",
    "Judgment",
    "LangChainOracle",
    "build_classification_prompt",
    "parse_judgment",
    "result_from_judgment",
    "summarize",
]
