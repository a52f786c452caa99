"""
Tests Module: Unit and Integration Tests

Test Coverage:
    - Core types, errors and configuration
    - Record codec, cursor codec, options and expressions
    - Table / partition operations against an in-memory DynamoDB double
    - Instrumentation hooks, logging and tracing
"""
