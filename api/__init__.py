"""HTTP API for the attendance system."""
from .api_server import create_app, run_server
__all__ = ['create_app', 'run_server']
