"""
Base analyzer protocol.

Analyzers compare a live frame against the ambient baseline.
They do not change agent state. They produce signals.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from frogchorus.core.frame import FeatureFrame
    from frogchorus.analyzers.calibrator import BaselineProfile


@dataclass
class AnalysisResult:
    """Base result from an analyzer."""
    analyzer_name: str
    timestamp_ms: float
    data: dict[str, Any] = field(default_factory=dict)


class Analyzer(ABC):
    """
    Abstract base for frame analyzers.

    Implementation requirements:
    - Must be fast; it runs on the frame delivery path
    - Must not block
    - Must treat a missing baseline as "nothing detected", not an error
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique analyzer name."""
        ...

    @abstractmethod
    def analyze(
        self,
        frame: FeatureFrame,
        baseline: BaselineProfile | None,
    ) -> AnalysisResult:
        """
        Analyze a single frame.

        Args:
            frame: Current feature frame
            baseline: Ambient profile of the shared pipeline, if settled

        Returns:
            AnalysisResult with the analyzer's findings
        """
        ...

    def reset(self) -> None:
        """Reset analyzer state (if any)."""
        pass
