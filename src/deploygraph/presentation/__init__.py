from .human_formatter import format_plan, format_apply, format_order

__all__ = ["format_plan", "format_apply", "format_order"]
