"""
Utility modules for the clinic care backend.

This package contains shared helpers used across the application, including
datetime utilities, pagination, schedule queries and email templates.
"""

from utils.pagination import PagedResult, paginate, paginate_list
from utils.schedule_queries import has_conflict

__all__ = ['PagedResult', 'paginate', 'paginate_list', 'has_conflict']
