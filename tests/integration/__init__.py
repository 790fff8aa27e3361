"""
Integration Tests Package for the SmartPark Allocation Engine

Integration tests focus on:
1. Service operations against real domain objects
2. End-to-end console sessions
3. Error handling across layer boundaries
4. Concurrent operations
"""
