from idlecombat.catalog.repository import ContentRepository, load_json_list

__all__ = ["ContentRepository", "load_json_list"]
