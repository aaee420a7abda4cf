import os
import sys

# Ensure repo root is on sys.path
_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, _ROOT)

# Serverless entry: the /api-mounted app
from backend.api.index import app  # noqa: F401
