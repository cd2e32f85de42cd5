"""
Domain models: cards, legality and the failure envelope.

Import from the submodules directly; this package does not re-export.
"""
