# File: smartpark/application/__init__.py
