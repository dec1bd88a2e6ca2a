#!/usr/bin/env python3
"""
Risk Engine Errors

Raised for structurally invalid requests. Per-record data problems never
raise; the normalizer reports them as dropped records instead.
"""


class RiskEngineError(Exception):
    """Base class for risk engine errors"""


class ConfigurationError(RiskEngineError, ValueError):
    """Invalid configuration or structurally invalid request"""


class UnsafePositionError(ConfigurationError):
    """Position is already below its liquidation ratio"""


class InsufficientDataError(RiskEngineError):
    """Price history too short to estimate volatility"""
