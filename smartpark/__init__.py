# File: smartpark/__init__.py
"""SmartPark - single-facility parking allocation engine"""

__version__ = "1.0.0"
