"""
Inventory module.

Holds the category collections, stock events (consumption and breakage
logs), derived alerts, and persistence of the serialized state.
"""
