"""Add-on Demo App - showcases platform add-ons, process types and failure codes.

The package root stays free of framework imports so the APM agent can be
initialised before FastAPI is loaded.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
