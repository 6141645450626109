"""
Middleware package for the Blood Buddy API.
"""
from .errors import (
    register_error_handlers,
    domain_error_handler,
    error_body
)

__all__ = [
    'register_error_handlers',
    'domain_error_handler',
    'error_body'
]
