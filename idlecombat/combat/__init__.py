"""
Combat package: damage formulas, skill selection, round resolution, arena
management, rewards and the combat manager that drives them.
"""
