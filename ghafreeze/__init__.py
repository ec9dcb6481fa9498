"""gha-freeze: pin GitHub Actions workflow references to immutable commit SHAs.

Mutable refs such as ``actions/checkout@v4`` are rewritten in place to
``actions/checkout@<40-hex-sha> # v4`` so CI definitions are reproducible
and cannot be changed underneath you by a moved tag or branch.
"""

__version__ = "0.2.0"
__description__ = "Pin GitHub Actions workflow references to immutable commit SHAs"

from ghafreeze.core.orchestrator import PinningOrchestrator

__all__ = ["PinningOrchestrator", "__version__"]
