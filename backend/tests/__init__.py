"""
Test suite for the media refresh backend.

Tests mirror the source layout: services/, pipeline/ and routers/.
"""

import sys
import os

# Backend modules are imported top-level (config, services, pipeline, ...)
_backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)
