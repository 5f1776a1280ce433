"""
Tests package - Test suite for the Keycloak resource operator.

Contains:
- unit/: Unit tests for the reconciliation core and its adapters
"""
