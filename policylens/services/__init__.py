"""
Analysis pipeline services: extraction, caching, model calls, orchestration.
"""
