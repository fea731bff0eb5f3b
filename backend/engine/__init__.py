"""
Engine package - provides the core settlement functionality
"""

from engine.settlement_engine import SettlementEngine, check_amount_bounds, compute_settlement

# Singleton instance bound to the application session factory
settlement_engine = SettlementEngine()

__all__ = [
    "settlement_engine",
    "SettlementEngine",
    "check_amount_bounds",
    "compute_settlement",
]
