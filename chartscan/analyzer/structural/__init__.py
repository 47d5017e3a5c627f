from .base_utils import ScanFailure
from .breakout_diagnostic import (
    BreakoutDiagnostic,
    DiagnosticResult,
    DiagnosticSummary,
    scan_breakout_diagnostic,
    summarize_diagnostics
)
from .consolidation_breakout import (
    SwingBreakoutResult,
    SwingConsolidationScanner,
    scan_consolidation_breakout
)
from .criteria import Criterion, CriteriaScore, WindowSummary
from .cup_and_handle import CupAndHandleResult, CupAndHandleScanner, scan_cup_and_handle
from .macd_scanners import (
    scan_bullish_cross_building_negative,
    scan_bullish_cross_building_positive,
    scan_macd_crossover
)
from .positional_breakout import (
    PositionalBreakoutResult,
    PositionalBreakoutScanner,
    scan_positional_breakout
)
from .positional_scanners import DAILY_SCANNER_IDS, POSITIONAL_SCANNERS, PositionalHit, run_positional_scanner
from .settings import (
    CupAndHandleSettings,
    DiagnosticSettings,
    PositionalBreakoutSettings,
    SwingBreakoutSettings,
    TieredBreakoutSettings,
    TieredPositionalSettings
)
from .tiered_breakout import (
    TieredBreakoutResult,
    TieredBreakoutScanner,
    TieredScanSummary,
    scan_tiered_breakout,
    summarize_tiered_scan
)

__all__ = [
    'ScanFailure',
    'Criterion',
    'CriteriaScore',
    'WindowSummary',
    'SwingBreakoutResult',
    'SwingConsolidationScanner',
    'scan_consolidation_breakout',
    'PositionalBreakoutResult',
    'PositionalBreakoutScanner',
    'scan_positional_breakout',
    'CupAndHandleResult',
    'CupAndHandleScanner',
    'scan_cup_and_handle',
    'TieredBreakoutResult',
    'TieredBreakoutScanner',
    'TieredScanSummary',
    'scan_tiered_breakout',
    'summarize_tiered_scan',
    'BreakoutDiagnostic',
    'DiagnosticResult',
    'DiagnosticSummary',
    'scan_breakout_diagnostic',
    'summarize_diagnostics',
    'POSITIONAL_SCANNERS',
    'DAILY_SCANNER_IDS',
    'PositionalHit',
    'run_positional_scanner',
    'scan_macd_crossover',
    'scan_bullish_cross_building_negative',
    'scan_bullish_cross_building_positive',
    'SwingBreakoutSettings',
    'PositionalBreakoutSettings',
    'CupAndHandleSettings',
    'TieredBreakoutSettings',
    'TieredPositionalSettings',
    'DiagnosticSettings'
]
