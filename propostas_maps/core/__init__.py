"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants, URLs, path templates
- exceptions: Custom exception hierarchy
"""
