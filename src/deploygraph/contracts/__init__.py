from .reports import PlanReport, ApplyReport, REPORT_VERSION

__all__ = ["PlanReport", "ApplyReport", "REPORT_VERSION"]
