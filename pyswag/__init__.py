"""Generate Swagger 2.0 documents from handler docstrings.

Build-time entry point: pyswag.gen.Generator. Generated docs.py modules only
import pyswag.registry at runtime.
"""

__version__ = "0.1.0"
