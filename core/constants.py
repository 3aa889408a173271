"""
Core — Constants

Audit action names and pagination limits shared by every app.

@file core/constants.py
"""

AUDIT_ACTION_CREATE = 'CREATE'
AUDIT_ACTION_UPDATE = 'UPDATE'
AUDIT_ACTION_SOFT_DELETE = 'SOFT_DELETE'
AUDIT_ACTION_STATUS_CHANGE = 'STATUS_CHANGE'
AUDIT_ACTION_STOCK_MOVEMENT = 'STOCK_MOVEMENT'
AUDIT_ACTION_RECONCILIATION = 'RECONCILIATION'

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

LOGGER_NAME = 'pharmastock'
