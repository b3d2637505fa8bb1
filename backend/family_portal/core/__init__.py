# family_portal/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- errors: Domain errors and their HTTP status/code mapping
- rate_limit: Per-address request throttling in front of /api
- security: Password hashing and session token signing
"""
