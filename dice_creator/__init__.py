"""
Dice Creator core: custom dice, dice sets, share links and secure rolls.
"""
