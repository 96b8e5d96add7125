"""goalplan - turn a goal and its draft tasks into a feasible, adaptable schedule."""

__version__ = "0.1.0"
