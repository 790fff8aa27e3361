# File: smartpark/presentation/__init__.py
