from .executor import Executor
from .models import ApplyResult, OperationResult, OperationStatus

__all__ = ["Executor", "ApplyResult", "OperationResult", "OperationStatus"]
