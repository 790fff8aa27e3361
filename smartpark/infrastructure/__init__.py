# File: smartpark/infrastructure/__init__.py
