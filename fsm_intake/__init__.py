"""
FSM email intake core package.
"""

from . import email_processing
from . import storage
from . import utils

__version__ = '1.0.0'

__all__ = [
    'email_processing',
    'storage',
    'utils'
]
