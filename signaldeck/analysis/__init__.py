"""Historical signal-log analysis."""
from .pipeline import AnalysisResult, SignalFilter, run_analysis
from .signal_log import SignalLogError, load_signal_log

__all__ = ['AnalysisResult', 'SignalFilter', 'run_analysis', 'SignalLogError', 'load_signal_log']
