"""Domain layer: entities, enums, and exceptions.
"""
