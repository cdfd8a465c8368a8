from .markdown import generate_plan_markdown
from .artifact import write_json_report

__all__ = ["generate_plan_markdown", "write_json_report"]
