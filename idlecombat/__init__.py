"""
Combat core for the idle RPG.

This package resolves rounds of turn-based combat between a character and a
five-slot monster arena, including skill selection, damage, monster
replenishment, rewards and the combat state machine around them.
"""
