"""
stormimpact package
===================

Storm-events impact report: which event types are most harmful to
population health, and which have the greatest economic consequences.

- The CLI entry point is in `stormimpact/cli.py`.
- Dataset / lookup-table loading is in `stormimpact/loader.py`.
- Filtering and aggregation (the ranking "engine") are in `stormimpact/engine.py`.
- Label remapping is in `stormimpact/categories.py`, damage scaling in `stormimpact/damage.py`.
"""

__version__ = '0.1.0'
