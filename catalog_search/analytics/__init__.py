"""
Analytics модуль - лог поисковых запросов и популярные запросы
"""
from .logger import SearchAnalytics, AnalyticsStats

__all__ = [
    "SearchAnalytics",
    "AnalyticsStats",
]
