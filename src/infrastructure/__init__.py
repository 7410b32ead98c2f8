"""
infrastructure - Concrete implementations of domain ports.

Contains all vendor-specific code: aiosqlite, LangChain providers, settings.
Depends on domain/ only (implements ports). Never imported by application/.
"""
