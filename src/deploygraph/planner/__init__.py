from .models import Action, Operation, Plan, PropertyChange
from .planner import Planner

__all__ = ["Action", "Operation", "Plan", "PropertyChange", "Planner"]
