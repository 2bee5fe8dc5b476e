"""
Artisan Match - semantic matching of buyer queries to artisan profiles.
"""

__version__ = "0.1.0"
__app_name__ = "Artisan Match"
