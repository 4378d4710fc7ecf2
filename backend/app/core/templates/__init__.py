from .store import TagStore, TemplateStore

__all__ = ["TagStore", "TemplateStore"]
