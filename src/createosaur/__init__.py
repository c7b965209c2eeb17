"""
Createosaur - multi-provider AI image generation for hybrid dinosaur creatures.

This package provides the generation core:
- providers: vendor adapters, capability mapping and the fallback registry
- generation: orchestrator, demo-mode placeholder and the consumer hook
- trial: anonymous trial quota tracking and the trial endpoint client
- server: the authoritative anonymous-generation endpoint
"""

__version__ = "0.1.0"
