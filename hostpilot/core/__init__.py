"""
Core layer containing interfaces, domain models and the exception taxonomy.

This layer has no dependencies on infrastructure and defines the contracts
the plugin and execution subsystems are built against.
"""
