"""memctx - draft/commit editor with live preview for claude-mem context settings."""

__version__ = "0.1.0"
__description__ = "Draft/commit editor with live preview for claude-mem context settings"

__all__ = ["__version__"]
