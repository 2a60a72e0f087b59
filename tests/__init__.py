"""
Mente Merecedora Test Suite

Tests are organized into:
- unit/: Unit tests for insights, schemas, security and the assistant
- integration/: API tests against an isolated SQLite database
"""
