"""
Background jobs
"""
from famhub.scheduler.exchange_rate_scheduler import ExchangeRateScheduler

__all__ = ["ExchangeRateScheduler"]
