"""
IRIS gateway client core.

- auth: strategy resolution, OAuth token cache, header construction
- routing: endpoint to backend host mapping
- http: request execution with retry/backoff and error normalization
- client: the ``IRIS`` facade wiring them together
"""
