from .execution import Execution
from .memory import Memory

__all__ = ["Execution", "Memory"]
