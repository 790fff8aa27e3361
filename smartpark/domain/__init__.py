# File: smartpark/domain/__init__.py
