"""
Adapters: CLI, configuration and language model backends
"""
