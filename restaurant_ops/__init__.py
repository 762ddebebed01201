"""
                Restaurant Operations Console

Workflow engine for the restaurant's orders, delivery assignments and
reservations, with a live/synthetic data-source fallback and a FastAPI
admin API on top.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
