"""AcuaGenius - conversational command engine for tank and sensor management."""

__version__ = "0.1.0"
__logo__ = "🐟"
