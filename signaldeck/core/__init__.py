"""Core module - config, logging, models and the pure signal/kline logic."""
from .config import ConfigurationError, ReconnectPolicy, load_config
from .kline_continuity import KlineContinuityChecker, KlineGap, KlineReport
from .logger import get_logger, setup_logger
from .slot_limit import SlotLimitSimulator, apply_slot_limit
from .stats import StatsBucket, by_day, by_level, by_month, summarize

__all__ = [
    'ConfigurationError', 'ReconnectPolicy', 'load_config',
    'KlineContinuityChecker', 'KlineGap', 'KlineReport',
    'get_logger', 'setup_logger',
    'SlotLimitSimulator', 'apply_slot_limit',
    'StatsBucket', 'by_day', 'by_level', 'by_month', 'summarize',
]
