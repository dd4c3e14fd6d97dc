"""`hsmusic` - data core of a static-site generator for a music wiki.

Subpackages:
- data: Cacheable objects, composite properties, validators, wiki things
- pipeline: Linking wiki data and the load-run orchestrator
- schemas: Pydantic configuration
- util: Reference finding and small helpers
"""

__version__ = "0.1.0"
