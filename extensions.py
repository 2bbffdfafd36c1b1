"""
Shared Flask extension instances (rate limiter, CSRF, compression).

Created unbound here and attached to the app in create_app() so blueprints
can import them without a circular import.
"""

from __future__ import annotations

from flask_compress import Compress
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect

limiter = Limiter(key_func=get_remote_address, default_limits=["200 per hour"])
csrf = CSRFProtect()
compress = Compress()
