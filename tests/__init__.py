"""
Test suite for Web Intelligence System.

Provides comprehensive tests for all modules:
- Unit tests for individual components
- Integration tests for module interactions
- Fixtures for common test data
"""
