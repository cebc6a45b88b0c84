"""
Core business logic modules for the Internship Matcher service.

Submodules:
- exceptions: Typed errors of the matching pipeline
- matching: End-to-end embedding and matching orchestration
"""
