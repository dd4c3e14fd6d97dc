"""Pipeline modules.

- linker: Binds wiki data collections onto things
- orchestrator: Load-run controller
"""

from hsmusic.pipeline.linker import WikiDataBinding, link_and_bind_wiki_data
from hsmusic.pipeline.orchestrator import WikiDataOrchestrator

__all__ = [
    "WikiDataBinding",
    "WikiDataOrchestrator",
    "link_and_bind_wiki_data",
]
