"""
tests/integration/
~~~~~~~~~~~~~~~~~~
Integration tests that call the real Nominatim reverse endpoint.

These tests are SKIPPED by default. To run them:

    INTEGRATION_TESTS=1 pytest tests/integration/ -v

Rate Limit Considerations:
- Nominatim: 1 req/sec - rate limited in code and by the fixture below
"""
