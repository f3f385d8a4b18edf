"""
User interface components for the receipt client.
"""

from .components import (
    setup_sidebar,
    display_notifications,
    display_upload_section,
    display_analytics,
    display_receipts_list,
    display_error_fallback,
    run_async
)

__all__ = [
    'setup_sidebar',
    'display_notifications',
    'display_upload_section',
    'display_analytics',
    'display_receipts_list',
    'display_error_fallback',
    'run_async'
]
