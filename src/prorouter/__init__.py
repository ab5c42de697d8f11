"""prorouter - Pro-tier model routing under a premium token cap.

Modules:
    - config: Tuning constants, provider catalog, YAML settings loader
    - routing: Intent scoring, budget admission, hash dispatch, delta prompts
    - cli: Diagnostics CLI for explaining routing decisions
"""

__version__ = "1.0.0"
