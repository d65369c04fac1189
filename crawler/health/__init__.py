"""
Package initialization for the crawler trigger server.
"""
# Import trigger server
from .trigger_server import handle_trigger, start_trigger_server

__all__ = [
    'handle_trigger',
    'start_trigger_server'
]
