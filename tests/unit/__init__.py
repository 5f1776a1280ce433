"""Unit tests for the Keycloak resource operator."""
