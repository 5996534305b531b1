"""
Dependency injection for API services.

Provides the container holding settings, the optional hybrid search
orchestrator and the shared cross-encoder scorer.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hybrid_rerank.core.config import Settings, get_settings
from hybrid_rerank.rerankers.cross_encoder import CrossEncoderScorer, PairwiseScorerProtocol
from hybrid_rerank.search.hybrid import HybridSearchOrchestrator


@dataclass
class ServiceContainer:
    """Container for all service dependencies.

    Attributes:
        settings: Application settings
        orchestrator: Hybrid search orchestrator; None when no search
            backends are wired (only /v1/rerank is then usable)
        scorer: Pairwise scorer shared by cross-encoder rerankers so the
            model is loaded once per process
    """

    settings: Settings = field(default_factory=get_settings)
    orchestrator: HybridSearchOrchestrator | None = None
    scorer: PairwiseScorerProtocol | None = None

    def __post_init__(self) -> None:
        if self.scorer is None:
            self.scorer = CrossEncoderScorer(
                model_name=self.settings.cross_encoder_model,
                device=self.settings.cross_encoder_device,
            )
