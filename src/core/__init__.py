"""
Core functionality modules for the receipt client.
"""

from .models import Receipt, ReceiptItem, AnalyticsSummary
from .categories import Category, CategoryDescriptor, CATEGORIES, color_for
from .algorithms import SearchEngine, AnalyticsEngine, ReceiptView
from .export import DataExporter
from .api import ReceiptApiClient
from .controller import AppController
from .notifications import NotificationKind, NotificationQueue

__all__ = [
    'Receipt',
    'ReceiptItem',
    'AnalyticsSummary',
    'Category',
    'CategoryDescriptor',
    'CATEGORIES',
    'color_for',
    'SearchEngine',
    'AnalyticsEngine',
    'ReceiptView',
    'DataExporter',
    'ReceiptApiClient',
    'AppController',
    'NotificationKind',
    'NotificationQueue'
]
