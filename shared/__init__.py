"""
Shared utilities for the IRIS gateway client.

This package holds the building blocks the client core depends on:

- config: Client configuration via pydantic-settings
- logging: Structured logging with request/user correlation
- metrics: Prometheus metrics for request attempts, retries and token fetches
- errors: Client error taxonomy and the ErrorResponse model
- retry: Retry decisions and backoff delays
- test_helpers: Mock transports and fixtures for tests

Do not import from iris_gateway into shared/.
"""
