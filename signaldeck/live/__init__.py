"""Live state owners fed by the stream clients."""
from .kline_monitor import KlineMonitor
from .signal_book import LiveSignalBook
from .stats_monitor import StatsMonitor
from .ticker_board import TickerBoard, TickerInfo

__all__ = ['KlineMonitor', 'LiveSignalBook', 'StatsMonitor', 'TickerBoard', 'TickerInfo']
