"""Merchant scan pipeline.

Discovers candidate storefronts through web search, scrapes each one for
payment, product and licensing evidence, and classifies it against the
three-criterion violation rule.

Public API::

    from pipeline import PipelineOrchestrator, Settings
    orchestrator = PipelineOrchestrator.from_settings(Settings.from_env())
"""

from pipeline.config import Settings
from pipeline.runner import PipelineOrchestrator

__all__ = ["Settings", "PipelineOrchestrator"]
