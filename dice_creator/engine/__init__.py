"""
Dice Creator engine: entity types, validation, factories, rolling and share encoding.
No web framework or storage medium in here.
"""
