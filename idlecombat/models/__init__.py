"""
Data models of the combat core.

Catalog definitions come from external collaborators, monster instances and
the combat state are owned by the core, and round results and log entries
are what the core hands back.
"""
