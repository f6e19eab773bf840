"""Browser-driven UI flows for the BookNView theatre owner dashboard.

Each flow drives a running frontend (and, through it, the API) with
Selenium and reports pass/fail through the process exit code.
"""

__version__ = "1.0.0"
