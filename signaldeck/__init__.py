"""
SignalDeck - Live Signal Monitor
================================

Live view over a binary-outcome trading-signal feed, plus replay of
historical signal logs under a concurrent-position cap.
"""

__version__ = "0.1.0"

__all__ = ["SignalDeck", "main"]


def __getattr__(name: str):
    if name in __all__:
        from .orchestrator import SignalDeck, main
        return {"SignalDeck": SignalDeck, "main": main}[name]
    raise AttributeError(f"module 'signaldeck' has no attribute {name}")
