"""
API Routers package.

Re-export the router modules so `fleet_notify.main` can import and register them.
"""

from . import auth  # noqa: F401
from . import notifications  # noqa: F401
