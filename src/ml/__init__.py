"""
Machine Learning modules for the Internship Matcher service.

Submodules:
- embeddings: Document normalization, embedding and similarity search
"""
